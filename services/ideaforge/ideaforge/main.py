import os
import logging
from fastapi import FastAPI
from .api import router as sketch_router

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = FastAPI(title="IdeaForge Mockup Service")
app.include_router(sketch_router)


@app.get("/health")
def health():
    return {"status": "ok"}
