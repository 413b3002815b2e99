"""
FastAPI application entry point.

Run with: uvicorn api.main:app --reload
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from backend/.env (optional) before other imports that read env
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(env_path)

from api.routes import images, itinerary


# Create app
app = FastAPI(
    title="Itinerary Studio API",
    description="API for generating, illustrating and exporting trip itineraries",
    version="0.1.0",
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure properly for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(itinerary.router, prefix="/itinerary", tags=["itinerary"])
app.include_router(images.router, prefix="/api/pexels", tags=["images"])


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "Itinerary Studio API"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
