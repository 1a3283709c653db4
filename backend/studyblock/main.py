"""
FastAPI application entry point.
"""
from fastapi import FastAPI

from studyblock.routes import health, reminders
from studyblock.utils.logger import setup_logging

# Setup logging
setup_logging()

# Create FastAPI app
app = FastAPI(
    title="StudyBlock",
    description="Email reminders for scheduled study sessions",
    version="1.0.0",
)

# No CORSMiddleware: routes/reminders.py answers pre-flight and sets CORS headers

# Include routers
app.include_router(health.router, prefix="/api", tags=["Health"])
app.include_router(reminders.router, prefix="/api", tags=["Reminders"])


@app.get("/")
async def root():
    """Root endpoint - redirects to docs."""
    return {
        "message": "StudyBlock API",
        "docs": "/docs",
        "health": "/api/health",
        "reminders": "/api/send-study-reminders",
    }
