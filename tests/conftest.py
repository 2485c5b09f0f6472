import os

# Settings are cached on first use, so these must be in place before any
# stockflow module is imported.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("PASSWORD_PBKDF2_ROUNDS", "1000")
os.environ.setdefault("JWT_SECRET", "test-secret-that-is-long-enough-for-hs256")
os.environ.setdefault("ADMIN_PASSWORD", "admin-pass")
os.environ.setdefault("LOG_LEVEL", "WARNING")
