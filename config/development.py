import os

from config.config import *  # noqa: F401,F403
from config.config import db_config_from_env, env_flag

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
DB_CONFIG = db_config_from_env("site_attendance_db")
DEBUG = True

# schema.sql is idempotent (CREATE TABLE IF NOT EXISTS)
AUTO_INIT_DB = env_flag("AUTO_INIT_DB", True)
# seed.sql plus the admin / genba demo logins
AUTO_SEED_DB = env_flag("AUTO_SEED_DB", False)
