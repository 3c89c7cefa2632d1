import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware import Middleware
from starlette.middleware.sessions import SessionMiddleware

from attendqr.accounts import AccountError
from attendqr.admin_router import router as admin_router
from attendqr.attendance import AttendanceError
from attendqr.auth_router import router as auth_router
from attendqr.config import LOG_LEVEL, SECRET_KEY
from attendqr.csv_io import CSVImportError
from attendqr.db import Base, engine
from attendqr.lecturer_router import router as lecturer_router
from attendqr.notifications_router import router as notifications_router
from attendqr.student_router import router as student_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

middleware = [
    Middleware(SessionMiddleware, secret_key=SECRET_KEY, same_site="lax")
]

app = FastAPI(title="AttendQR", middleware=middleware)

# Create database tables (if they don't exist)
Base.metadata.create_all(bind=engine)

app.include_router(auth_router)
app.include_router(student_router)
app.include_router(lecturer_router)
app.include_router(admin_router)
app.include_router(notifications_router)


@app.exception_handler(AttendanceError)
async def attendance_error_handler(request: Request, exc: AttendanceError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})


@app.exception_handler(AccountError)
async def account_error_handler(request: Request, exc: AccountError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(CSVImportError)
async def csv_import_error_handler(request: Request, exc: CSVImportError):
    return JSONResponse(status_code=400, content={"detail": exc.message, "invalid_rows": exc.invalid_rows})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "A database error occurred. Please try again."})
