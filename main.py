"""
CSEG Game Server - entry point.
Runs the FastAPI application from the cseg package on all interfaces so
other devices on the LAN can join.
"""
import os

import uvicorn

from cseg.main import app

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 3001))
    uvicorn.run(app, host="0.0.0.0", port=port)
