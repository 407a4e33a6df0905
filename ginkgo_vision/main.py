import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi

from ginkgo_vision.api.routes import router as api_router
from ginkgo_vision.config import get_settings

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Ginkgo Vision API",
    description="API for ginkgo leaf viewing-suitability analysis",
    version="0.1.0",
)

# CORS middleware for the browser front-end
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/", tags=["Health"])
async def root():
    return {"message": "Welcome to Ginkgo Vision API", "status": "active"}


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title="Ginkgo Vision API",
        version="0.1.0",
        description="Upload a ginkgo leaf photo and find out whether the trees are worth a visit",
        routes=app.routes,
    )
    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("ginkgo_vision.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
