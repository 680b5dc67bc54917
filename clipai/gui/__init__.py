# GUI package for the Tkinter popup

from .popup import TkPopupSurface, is_dark_mode

__all__ = [
    'TkPopupSurface',
    'is_dark_mode'
]
