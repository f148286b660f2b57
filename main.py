import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import database
from config import configure_logging, settings
from errors import register_exception_handlers
from admin import router as admin_router
from auth import router as auth_router
from menu_items import router as menu_items_router
from orders import router as orders_router
from reviews import router as reviews_router

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is not None:
        database.ensure_indexes(database.db)
        logger.info("Connected to database %s", settings.database_name)
    else:
        logger.warning("DATABASE_URL / DATABASE_NAME not set; requests needing storage will fail")
    yield


app = FastAPI(title="Kazakh Menu API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth_router)
app.include_router(menu_items_router)
app.include_router(reviews_router)
app.include_router(orders_router)
app.include_router(admin_router)


# ===================== Health =====================
@app.get("/health")
def health():
    response = {
        "status": "OK",
        "message": "Kazakh Menu API is running",
        "timestamp": datetime.now(timezone.utc),
        "database": "Not Connected",
    }
    try:
        if database.db is not None:
            database.db.command("ping")
            response["database"] = "Connected"
    except Exception as e:
        logger.warning("Database ping failed: %s", e)
        response["database"] = f"Error: {str(e)[:80]}"
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
