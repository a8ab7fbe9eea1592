import logging
import os
from datetime import datetime, timezone
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

load_dotenv()

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging() -> None:
    """File + console logging; LOG_FILE and LOG_LEVEL override the defaults."""
    log_file = os.getenv("LOG_FILE") or os.path.join(os.path.dirname(__file__), "..", "logs.txt")
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_file, mode="a"),
            logging.StreamHandler(),
        ],
    )
    # Failed quotes are reported by MarketDataService
    logging.getLogger("yfinance").setLevel(logging.CRITICAL)


configure_logging()
logger = logging.getLogger(__name__)

from comp_analyzer.api.routes import router

app = FastAPI(
    title="CompAnalyzer",
    description="Comparable-company matching and multi-method valuation for private companies",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "http://localhost:5173").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)

logger.info("CompAnalyzer API started")


@app.get("/ping")
async def ping():
    """Liveness probe."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "CompAnalyzer API",
    }
