"""Local entry point for the Laneboard API.

Usage:
    python run.py
    LANEBOARD_PORT=8000 python run.py

Reads .env first so DATABASE_URL / SECRET_KEY / ALLOWED_SIGNUP_DOMAIN
can live there during development. If a ./venv exists and we are not
already inside it, re-launches with that interpreter.
"""

import os
import subprocess
import sys

_project_dir = os.path.dirname(os.path.abspath(__file__))
_venv_python = os.path.join(_project_dir, "venv", "bin", "python")

if os.path.exists(_venv_python) and os.path.realpath(sys.executable) != os.path.realpath(_venv_python):
    print("[laneboard] Re-launching with ./venv Python...")
    try:
        sys.exit(subprocess.call([_venv_python] + sys.argv))
    except KeyboardInterrupt:
        sys.exit(0)

from dotenv import load_dotenv

load_dotenv()

from laneboard import create_app

app = create_app(os.environ.get("FLASK_ENV", "development"))

if __name__ == "__main__":
    app.run(
        debug=app.config.get("DEBUG", False),
        host=os.environ.get("LANEBOARD_HOST", "127.0.0.1"),
        port=int(os.environ.get("LANEBOARD_PORT", 5001)),
    )
