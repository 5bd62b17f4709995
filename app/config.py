from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_TITLE: str = "Worklog Time Tracker"
    MONGODB_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "time_tracker"
    MONGODB_TRANSACTIONS: bool = True  # requires a replica set
    PRODUCTION_MODE: bool = False
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    LOCAL_UTC_OFFSET_MINUTES: int = 480
    EARLY_MORNING_CUTOFF_HOUR: int = 8

    class Config:
        env_file = ".env"

settings = Settings()
