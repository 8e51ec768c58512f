from fastapi import FastAPI

from .api import health
from .config import settings
from .logging_config import setup_logging

setup_logging(settings.log_level)

# Create FastAPI app
app = FastAPI(
    title="lpkit",
    description="Concentrated-liquidity deployment pipeline",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Include routers
app.include_router(health.router, tags=["Health"])


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "lpkit",
        "version": "0.1.0",
        "description": "Concentrated-liquidity deployment pipeline",
        "docs": "/docs",
        "health": "/healthz"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "lpkit.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
