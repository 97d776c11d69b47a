import os

from config.config import *  # noqa: F401,F403
from config.config import db_config_from_env, env_flag

SECRET_KEY = os.environ["SECRET_KEY"]
DB_CONFIG = db_config_from_env("site_attendance_db")
DEBUG = False

AUTO_INIT_DB = env_flag("AUTO_INIT_DB", False)
AUTO_SEED_DB = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")
