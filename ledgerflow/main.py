"""Main FastAPI application."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from ledgerflow.config import settings
from ledgerflow.engines import routes as recurring_routes

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create FastAPI app
app = FastAPI(
    title="Ledgerflow API",
    description="Recurring bills and subscriptions reconciled against a monthly budget",
    version="0.1.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(
    recurring_routes.router, prefix=f"{settings.API_V1_PREFIX}/recurring", tags=["Recurring"]
)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Ledgerflow API",
        "version": "0.1.0",
        "data_provider": settings.DATA_PROVIDER,
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "ledgerflow.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
