#!/usr/bin/env python3
"""
Local Flask control server

Lets scripts and launchers trigger a summary or hide the popup without the
global hotkey, e.g. `curl -X POST http://127.0.0.1:5127/summarize`.
"""

import copy

from flask import Flask, abort, jsonify, request

from . import __version__

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5127


def redact_config(document):
    """Config document with every API key masked"""
    document = copy.deepcopy(document)
    for entry in document.get("providers", {}).values():
        key = entry.get("apiKey") or ""
        entry["apiKey"] = f"{key[:4]}…" if key else ""
    return document


def create_app(clip_app):
    """
    Build the Flask app around a running ClipAIApp.

    Args:
        clip_app: object exposing store, orchestrator and settings
    """
    app = Flask(__name__)

    @app.route('/')
    def index():
        """Root endpoint with service information"""
        config = clip_app.store.load()
        return jsonify({
            "service": "ClipAI",
            "version": __version__,
            "status": "running",
            "active_provider": config.active_provider_id,
            "presets": [{"id": p.id, "name": p.name, "accelerator": p.accelerator} for p in config.presets],
            "endpoints": {
                "/summarize": "POST, optional ?preset=<id>&wait=1",
                "/hide": "POST",
                "/models/<provider>": "GET",
                "/config": "GET (API keys redacted)",
            },
        })

    @app.route('/health')
    def health():
        """Health check endpoint"""
        config = clip_app.store.load()
        return jsonify({
            "status": "healthy",
            "popup": clip_app.lifecycle.phase.value,
            "providers": {pid: cred.has_key for pid, cred in config.providers.items()},
            "hotkeys": list(clip_app.registry.registered) if clip_app.registry else [],
        })

    @app.route('/summarize', methods=['POST'])
    def summarize():
        """Same as pressing a preset hotkey"""
        config = clip_app.store.load()
        preset_id = request.args.get('preset')
        preset = config.find_preset(preset_id) if preset_id else config.default_preset()
        if preset is None:
            return jsonify({"error": f"Preset not found: {preset_id}"}), 404

        if request.args.get('wait', 'no').lower() in ('1', 'yes', 'true'):
            result = clip_app.orchestrator.run_summary(preset)
            return jsonify({"status": "done", "preset": preset.id, "result": result})

        clip_app.orchestrator.trigger_async(preset)
        return jsonify({"status": "started", "preset": preset.id}), 202

    @app.route('/hide', methods=['POST'])
    def hide():
        if request.args.get('now', 'no').lower() in ('1', 'yes', 'true'):
            return jsonify(clip_app.settings.force_hide_now())
        return jsonify(clip_app.settings.hide_window())

    @app.route('/models/<provider_id>')
    def models(provider_id):
        if provider_id not in clip_app.store.load().providers:
            abort(404, description=f'Unknown provider: {provider_id}')
        return jsonify({"provider": provider_id, "models": clip_app.settings.list_models(provider_id)})

    @app.route('/config')
    def config_view():
        return jsonify(redact_config(clip_app.settings.get_config()))

    @app.errorhandler(400)
    def bad_request(e):
        """Handle 400 errors"""
        return jsonify({"error": str(e.description)}), 400

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": str(e.description)}), 404

    @app.errorhandler(500)
    def server_error(e):
        """Handle 500 errors"""
        return jsonify({"error": "Internal server error"}), 500

    return app
