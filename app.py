from dotenv import load_dotenv

from src.site_attendance.site_attendance.main import create_app

load_dotenv(override=False)

app = create_app()

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=bool(app.config.get("DEBUG", False)))
