"""
Global application state
Shared resources accessible across all modules
"""
from typing import Optional

from pubquiz.core.content import ContentResolver
from pubquiz.models import QuizSettings

# Server settings, replaced by the YAML config at startup
SETTINGS: QuizSettings = QuizSettings()

# Resolver for file:// question references (set at startup)
CONTENT_RESOLVER: Optional[ContentResolver] = None
