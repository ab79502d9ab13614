import os
from dataclasses import dataclass
from dotenv import load_dotenv
load_dotenv()
@dataclass(frozen=True)
class Settings:
    gcp_project_id: str = os.getenv("GOOGLE_CLOUD_PROJECT_ID","")
    bigquery_dataset: str = os.getenv("BIGQUERY_DATASET","symphony_dashboard")
    bigquery_location: str = os.getenv("BIGQUERY_LOCATION","US")
    credentials_path: str = os.getenv("GOOGLE_APPLICATION_CREDENTIALS","")
    log_level: str = os.getenv("LOG_LEVEL","INFO")
    # valeurs provisoires pour les nouvelles performances (enrichies plus tard)
    default_capacity: int = int(os.getenv("DEFAULT_CAPACITY","1600"))
    default_occupancy_goal: float = float(os.getenv("DEFAULT_OCCUPANCY_GOAL","85"))
    default_season: str = os.getenv("DEFAULT_SEASON","25-26 Classical")
    default_venue: str = os.getenv("DEFAULT_VENUE","HELZBERG HALL")
    sentinel_date: str = os.getenv("SENTINEL_PERFORMANCE_DATE","2025-01-01")
    snapshot_source: str = os.getenv("SNAPSHOT_SOURCE","pdf_webhook")
    download_timeout: float = float(os.getenv("DOWNLOAD_TIMEOUT","30"))

settings = Settings()
