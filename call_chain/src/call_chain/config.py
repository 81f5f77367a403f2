import os

from dotenv import load_dotenv

# Pick up a .env file from the working directory, if any
load_dotenv()


def _split_patterns(raw: str) -> list[str]:
    return [p.strip() for p in raw.split(",") if p.strip()]


class Settings:
    """Runtime settings, read once from the environment."""

    # Worker pool
    MAX_WORKERS: int = int(os.getenv("CALL_CHAIN_MAX_WORKERS", str(min(os.cpu_count() or 4, 8))))
    # Below this many class files a root is read in-process (no pool spawn)
    MIN_FILES_FOR_PARALLEL: int = int(os.getenv("CALL_CHAIN_MIN_FILES_FOR_PARALLEL", "15"))

    # Tree assembly: "containment" or "ancestor_path"
    CYCLE_GUARD: str = os.getenv("CALL_CHAIN_CYCLE_GUARD", "containment").lower()

    # Scanning
    BUILD_DESCRIPTOR: str = os.getenv("CALL_CHAIN_BUILD_DESCRIPTOR", "pom.xml")
    EXCLUDE_PATTERNS: list[str] = _split_patterns(os.getenv("CALL_CHAIN_EXCLUDE", ""))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info").lower()


settings = Settings()
