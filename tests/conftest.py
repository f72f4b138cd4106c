import os

# Must be set before aistaff.config is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["LLM_API_KEY"] = "test-key"
