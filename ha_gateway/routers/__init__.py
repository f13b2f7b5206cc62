"""HTTP routers for the FastAPI surface."""
