from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session
import logging
import os
from dotenv import load_dotenv

from db import get_db, init_db
from admission import __version__
from admission.routes import router as admission_router

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logging.info("App starting with DATABASE_URL")

app = FastAPI(title="Admission Simulation Service", version=__version__)

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

init_db()

app.include_router(admission_router)


@app.get("/", tags=["health"])
def root():
    return {"status": "ok", "app": "admission", "version": __version__}


@app.get("/health", tags=["health"], summary="Database connectivity check")
def health(db_session=Depends(get_db)):
    try:
        db: Session
        with db_session as db:
            db.execute(text("SELECT 1"))
        return {"status": "ok", "database": "connected"}
    except Exception as e:
        logging.error(f"Health check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "error", "database": "disconnected"})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", "3000")))
