"""
Configuration loader
"""
import os
import yaml
from pathlib import Path
from pubquiz.models import QuizSettings


DATABASE_URL_ENV = "QUIZ_DATABASE_URL"


def load_config(config_path: str = "config/quiz.yaml") -> QuizSettings:
    """
    Load server settings from a YAML file

    The database URL can be overridden with the QUIZ_DATABASE_URL
    environment variable so deployments do not need to edit the file.

    Args:
        config_path: Path to config file

    Returns:
        QuizSettings object
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}

    env_url = os.environ.get(DATABASE_URL_ENV)
    if env_url:
        data['database_url'] = env_url

    return QuizSettings(**data)
