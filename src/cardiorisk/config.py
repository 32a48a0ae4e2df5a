import os

from dotenv import load_dotenv


# =================================================
# Environment
# =================================================
BASE_DIR = os.path.dirname(
    os.path.dirname(
        os.path.dirname(__file__)
    )
)
ENV_PATH = os.path.join(BASE_DIR, ".env")
load_dotenv(dotenv_path=ENV_PATH)

APP_NAME = os.getenv("APP_NAME", "Heart Disease Risk Explainer")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
RATE_LIMIT_REQUESTS = int(os.getenv("RATE_LIMIT_REQUESTS", 60))
RATE_LIMIT_WINDOW = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", 60))
EXPLAIN_TOP_K = int(os.getenv("EXPLAIN_TOP_K", 5))
MAX_BATCH_ROWS = int(os.getenv("MAX_BATCH_ROWS", 100))
