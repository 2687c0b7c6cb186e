import logging
from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI

from app.routers.analyses import router as analyses_router
from app.routers.api import router as api_router
from app.routers.images import router as images_router

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="MedAIx Scan",
    description="FastAPI application for medical image validation and analysis",
    version="2.1.0"
)

app.include_router(api_router)
app.include_router(images_router)
app.include_router(analyses_router)
