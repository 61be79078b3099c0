from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from . import db, routers
from .errors import QuizError
from .logging_config import configure_logging

logger = configure_logging()

app = FastAPI(title="Tech-fest Quiz Engine")


@app.on_event("startup")
def startup():
    db.init_database()


@app.exception_handler(QuizError)
async def quiz_error_handler(request: Request, exc: QuizError):
    if exc.status_code >= 500:
        logger.error('%s %s failed: %s', request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={'detail': exc.to_dict()})


app.include_router(routers.api_router)
