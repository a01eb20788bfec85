import uvicorn

from functions.utils.settings import get_settings

# Launch from the repo root: python -m src.main  (PORT / PLATECHECK_* env vars apply)
# `python src/main.py` only puts src/ on sys.path, so it needs `pip install -e .` first.
# Without the launcher: uvicorn api:app --host 0.0.0.0 --port 3000
if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "api:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )
