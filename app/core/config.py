import os
from pydantic import BaseModel, Field
from typing import List
from dotenv import load_dotenv

load_dotenv()

class ScoringSettings(BaseModel):
    weight_tolerance: float = Field(default=float(os.getenv("SCORING_WEIGHT_TOLERANCE", "0.01")))
    decimal_places: int = Field(default=int(os.getenv("SCORING_DECIMAL_PLACES", "2")))
    rollup_max_workers: int = Field(default=int(os.getenv("ROLLUP_MAX_WORKERS", "4")))
    default_rating_scale_max: int = Field(default=int(os.getenv("DEFAULT_RATING_SCALE_MAX", "5")))
    under_performance_cutoff: float = Field(default=float(os.getenv("UNDER_PERFORMANCE_CUTOFF", "50")))

class Config(BaseModel):
    app_name: str = "Performance Scoring Engine"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"
    
    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./database.db")
    
    # Scoring engine
    scoring: ScoringSettings = ScoringSettings()
    
    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"

    # CORS: comma-separated origins loaded from env.
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://127.0.0.1:3000",
            ).split(",")
            if o.strip()
        ]
    )

settings = Config()

