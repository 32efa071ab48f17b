#!/usr/bin/env python3
"""
Local entrypoint for the AFx deposit simulator API.

The application lives under `afx_app/`; settings come from AFX_* variables.
Use `python3 server.py` to serve it.
"""

from afx_app.main import run


if __name__ == "__main__":
    run()
