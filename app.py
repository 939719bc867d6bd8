#!/usr/bin/env python
"""
Development server script for running the InnerFlow journal service.
Supports different environments through environment files:
- .env, .env.development, .env.production

Usage:
  FLASK_ENV=development python app.py  # Local-only unless SUPABASE_URL/SUPABASE_KEY are set
  FLASK_ENV=production python app.py
"""
import os

# Importing the package loads the environment files for FLASK_ENV
from innerflow import create_app

flask_env = os.environ.get('FLASK_ENV', 'development')

if __name__ == "__main__":
    app = create_app()
    port = int(os.environ.get("PORT", 5000))

    print(f"Starting InnerFlow journal service on http://localhost:{port}")
    print(f"Environment: {flask_env}")
    print(f"Local store: {app.config['LOCAL_STORE_URL']}")

    if app.config.get('SUPABASE_URL') and app.config.get('SUPABASE_KEY'):
        print(f"Remote sync: {app.config['SUPABASE_URL']}")
    else:
        print("Remote sync: disabled (set SUPABASE_URL and SUPABASE_KEY to enable)")

    debug = os.environ.get('DEBUG', 'False').lower() == 'true'
    # The reloader would start a second sync loop in the parent process
    app.run(host=os.environ.get('HOST', '0.0.0.0'), port=port, debug=debug, use_reloader=False)
