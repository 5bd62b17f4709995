from motor.motor_asyncio import AsyncIOMotorClient
from config import settings


client = AsyncIOMotorClient(settings.MONGODB_URL, tz_aware=True)
db = client[settings.DATABASE_NAME]


users_collection = db.users
work_logs_collection = db.work_logs
clock_records_collection = db.clock_records
work_time_settings_collection = db.work_time_settings
