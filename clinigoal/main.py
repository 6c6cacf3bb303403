import logging
import os

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from motor.motor_asyncio import AsyncIOMotorDatabase

from clinigoal import config
from clinigoal.auth.router import router as auth_router
from clinigoal.catalog.router import router as catalog_router
from clinigoal.database import create_indexes, db, get_db
from clinigoal.errors import register_exception_handlers
from clinigoal.payments.router import router as payment_router
from clinigoal.progress.router import router as progress_router, submissions_router
from clinigoal.reviews.router import router as review_router

config.setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Clinigoal Backend")

app.add_middleware(CORSMiddleware, **config.get_cors_settings())
register_exception_handlers(app)


@app.on_event("startup")
async def startup_event():
    for folder in ("videos", "notes"):
        os.makedirs(os.path.join(config.UPLOAD_DIR, folder), exist_ok=True)
    try:
        await create_indexes(db)
    except Exception as e:
        logger.warning("⚠️  Index creation warning: %s", e)
    logger.info("🚀 Clinigoal backend started")


# ==================== ROUTER REGISTRATION ====================
app.include_router(auth_router)
app.include_router(catalog_router)
app.include_router(payment_router)
app.include_router(progress_router)
app.include_router(submissions_router)
app.include_router(review_router)

app.mount("/uploads", StaticFiles(directory=config.UPLOAD_DIR, check_dir=False), name="uploads")
# ============================================================


@app.get("/")
def read_root():
    return {"message": "Clinigoal backend is running"}


@app.get("/api/health")
async def health(database: AsyncIOMotorDatabase = Depends(get_db)):
    try:
        await database.command("ping")
        status = "UP"
    except Exception as e:
        logger.error("❌ Database ping failed: %s", e)
        status = "DOWN"
    return {"backend": "UP", "database": status}
