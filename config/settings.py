"""Central Configuration for MentorMe."""
import os
from pathlib import Path
from dotenv import load_dotenv

# Base Directory (Root of the project)
BASE_DIR = Path(__file__).resolve().parent.parent

# Load Environment Variables
load_dotenv(BASE_DIR / ".env")

# LLM Settings
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")
GEMINI_MODEL_NAME = os.getenv("GEMINI_MODEL_NAME", "gemini-2.0-flash")

# "cloud" gets the rich context, "local" a compact one for small on-device models
AI_PROVIDER = os.getenv("AI_PROVIDER", "cloud").lower()

# Paths
DATA_STORAGE_PATH = Path(os.getenv("MENTORME_DATA_PATH", BASE_DIR / ".mentorme"))
SESSION_STORAGE_PATH = DATA_STORAGE_PATH / "sessions"

# Context Engine Settings
CLOUD_MAX_CONTEXT_TOKENS = 150000
LOCAL_MAX_CONTEXT_TOKENS = 1000
MAX_CONTEXT_TOKENS = 8000
MAX_RECENT_MESSAGES = 6
LOCAL_CHAT_MAX_MESSAGES = 20

# Reflection Session Settings
REFLECTION_MAX_EXCHANGES = 5
REFLECTION_MIN_EXCHANGES = 2

# Habit Settings
MAX_ACTIVE_HABITS = 2
HABIT_DAYS_TO_FORMATION = 66
STREAK_MILESTONES = (7, 14, 21, 30, 60, 90)
