#!/usr/bin/env python3
"""UDSM Hub System: development server entry point."""
import os

from hubsystem import create_app

app = create_app()

if __name__ == '__main__':
    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)
    app.run(debug=os.getenv('FLASK_DEBUG', '0') == '1', host='0.0.0.0', port=int(os.getenv('PORT', 5000)))
