from fastapi import FastAPI

from sast_viewer.api.report_routes import router as report_router
from sast_viewer.core.config import settings
from sast_viewer.core.logging import setup_logging

setup_logging()

tags_metadata = [
    {
        "name": "reports",
        "description": "Upload SARIF, Semgrep or GitLab SAST reports and get unified, de-duplicated findings.",
    },
    {
        "name": "health",
        "description": "Liveness probe for container orchestration.",
    },
]

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Normalizes security scan reports into one finding model and groups near-duplicate findings.",
    openapi_tags=tags_metadata,
)

app.include_router(report_router)


@app.get("/health", tags=["health"], summary="Health check")
def health() -> dict[str, str]:
    return {"status": "healthy", "version": settings.APP_VERSION}
