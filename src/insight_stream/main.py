from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from insight_stream.api.v1.api import api_router
from insight_stream.core.config import get_settings
from insight_stream.core.error_handler import global_exception_handler, setup_logging


setup_logging()
settings = get_settings()

app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Streaming and synchronous AI analysis endpoints",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(RequestValidationError, global_exception_handler)
app.add_exception_handler(StarletteHTTPException, global_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.include_router(api_router, prefix=settings.ANALYSIS_API_PREFIX)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("insight_stream.main:app", host="0.0.0.0", port=3001, reload=True)
