import logging
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.core import config
from app.core.database import mongodb
from app.routers import auth, chat, fields, inventory, livestock, weather

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="AgriAI API",
    description="Farm management with AI agronomy advice for Kazakh farmers",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.on_event("startup")
async def startup_event():
    await mongodb.connect()
    if not config.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY is not set; AI endpoints will return fallback advice")


@app.on_event("shutdown")
async def shutdown_event():
    await mongodb.disconnect()

app.include_router(auth.router)
app.include_router(fields.router)
app.include_router(livestock.router)
app.include_router(inventory.router)
app.include_router(chat.router)
app.include_router(weather.router)


@app.get("/")
async def root():
    return {
        "message": "AgriAI API - Farm Management and AI Agronomy",
        "version": "1.0.0",
        "endpoints": {
            "auth": "/auth",
            "fields": "/fields",
            "livestock": "/livestock",
            "chat": "/chat",
            "weather": "/weather"
        }
    }
