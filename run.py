import os

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from common.config import Config
from common.logging import logger
from view.research_view import router as research_router


def initialize_app():
    """Initialize the application with necessary setup"""
    os.makedirs(Config.LOG_DIR, exist_ok=True)
    if not Config.COURTLISTENER_API_TOKEN:
        logger.warning("COURTLISTENER_API_TOKEN is not set; requests will be anonymous")


# FastAPI app configuration
app = FastAPI(
    title="Amicus Brief Research Service",
    version="1.0.0",
    description="Citation parsing and multi-strategy case-law search against CourtListener"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify your frontend domain
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(research_router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "Amicus Brief Research Service",
        "version": "1.0.0",
        "courtlistener_token_configured": bool(Config.COURTLISTENER_API_TOKEN),
    }


def main():
    """Main function to run the research service"""
    initialize_app()
    uvicorn.run("run:app", host="0.0.0.0", port=int(os.getenv("PORT", 8000)), log_level="info")


if __name__ == "__main__":
    main()
