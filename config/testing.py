from config.config import *  # noqa: F401,F403
from config.config import db_config_from_env

SECRET_KEY = "test-secret"
DB_CONFIG = db_config_from_env("site_attendance_test")
DEBUG = False
TESTING = True

# tests run against in-memory repositories
AUTO_INIT_DB = False
AUTO_SEED_DB = False
