from fastapi import FastAPI

from app.core.config import settings
from app.core.errors import add_exception_handlers
from app.core.logging import configure_logging
from app.routers import auth, categories, businesses, reviews

configure_logging()

app = FastAPI(
    title=settings.project_name,
    version="1.0.0",
)

add_exception_handlers(app)

# Include routers
app.include_router(auth.router, prefix=settings.api_prefix)
app.include_router(categories.router, prefix=settings.api_prefix)
app.include_router(businesses.router, prefix=settings.api_prefix)
app.include_router(reviews.router, prefix=settings.api_prefix)


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": "Welcome to the Local Directory API",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
