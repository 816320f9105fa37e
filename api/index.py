# Vercel Serverless Function Entry Point
# Vercel's Python runtime picks up the WSGI app exposed as 'app'.
import os
import sys
import logging

# Add ROOT to sys.path so the 'coachdesk' package is importable without install
root_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if root_dir not in sys.path:
    sys.path.append(root_dir)

try:
    from coachdesk.app import create_app
    app = create_app()

except Exception as e:
    # Boot fail-safe: answer every path with 503 instead of a platform crash page
    logging.getLogger(__name__).exception(f"Application failed to start: {e}")
    from flask import Flask, jsonify
    boot_error = str(e)
    app = Flask(__name__)

    @app.route('/', defaults={'path': ''})
    @app.route('/<path:path>')
    def catch_all(path):
        return jsonify({
            'success': False,
            'data': None,
            'error': {'type': 'boot_error', 'message': boot_error, 'details': {}}
        }), 503
