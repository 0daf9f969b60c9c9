"""
HubPress Starter Template
=========================

A ready-to-run Flask application with every HubPress module enabled.

Run with:
    python app.py

Visit:
    http://localhost:5000/health     - Health check
    http://localhost:5000/blog/all   - Blog posts
    http://localhost:5000            - Frontend (when dist/index.html exists)
"""

import os
from flask import Flask
from hubpress import HubPress
from config import Config

# Create Flask app
app = Flask(__name__)
app.config.from_object(Config)

# Initialize HubPress - this registers all modules automatically
hubpress = HubPress(app)


# =============================================================================
# Run the app
# =============================================================================

if __name__ == '__main__':
    port = int(os.getenv('PORT', '5000'))
    print("\n" + "=" * 60)
    print("HubPress Starter Template")
    print("=" * 60)
    print(f"API:       http://localhost:{port}/blog/all")
    print(f"Health:    http://localhost:{port}/health")
    print(f"Modules:   {', '.join(hubpress.get_registered_modules())}")
    print("=" * 60 + "\n")

    app.run(host='0.0.0.0', port=port, debug=not Config.JWT_COOKIE_SECURE)
