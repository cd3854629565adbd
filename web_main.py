"""
Entry point for the ChessDuel web UI.

Development (hot-reload):
    python web_main.py

Production (serve built frontend):
    cd frontend && npm run build
    python web_main.py              ← everything on :8000
"""

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "chessduel.web.app:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
