import logging 

import uvicorn

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware
from routers import auth, clock, overtime, work_logs, work_time
from config import settings

PROD_MODE = settings.PRODUCTION_MODE

app = FastAPI(title=settings.PROJECT_TITLE)

app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(work_logs.router, prefix="/worklog", tags=["worklog"])
app.include_router(overtime.router, prefix="/overtime", tags=["overtime"])
app.include_router(clock.router, prefix="/clock", tags=["clock"])
app.include_router(work_time.router, prefix="/work-time", tags=["work_time"])

# Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins = [
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        ],
    allow_credentials = True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logging.basicConfig(
    level=logging.INFO,  # Set the logging level to INFO
    format='%(asctime)s - %(levelname)s - %(message)s',  # Log format
)

@app.get("/")
def index():
    return {"message": "Worklog time tracker"}


if __name__ == "__main__":
    if PROD_MODE == True:
    # Run Uvicorn without reload in production
        uvicorn.run("main:app", host="0.0.0.0", port=11000, reload=False)

    else:
        # Run Uvicorn with reload=True in development mode
        uvicorn.run("main:app", host="0.0.0.0", port=11000, reload=True)
