"""
Configuration settings for the Goal Tracker storage layer
"""
from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import ConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    
    # App
    APP_NAME: str = "OSRS Goal Tracker"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "local"
    LOG_LEVEL: str = "INFO"
    
    # AWS
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: Optional[str] = None  # Only for LocalStack, Lambda/ECS use IAM roles
    AWS_SECRET_ACCESS_KEY: Optional[str] = None  # Only for LocalStack, Lambda/ECS use IAM roles
    
    # DynamoDB
    DYNAMODB_ENDPOINT: Optional[str] = None  # None uses AWS, set for LocalStack
    GOAL_TRACKER_TABLE_NAME: str = "osrs-goal-tracker-dev"
    EMAIL_INDEX_NAME: str = "EmailIndex"
    DYNAMODB_MAX_RETRIES: int = 3
    QUERY_PAGE_SIZE: int = 100
    
    # Progress samples expire after this many days (None keeps them forever)
    PROGRESS_TTL_DAYS: Optional[int] = None
    
    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=True
    )


@lru_cache()
def get_settings() -> Settings:
    """Returns cached settings instance (singleton)"""
    return Settings()
