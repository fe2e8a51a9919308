from pathlib import Path
from digital_archive.config import settings


def ensure_storage_dirs(storage_dir: Path | None = None) -> Path:
    path = storage_dir or settings.storage_dir
    path.mkdir(parents=True, exist_ok=True)
    return path


def ensure_company_dir(company_id: str, storage_dir: Path | None = None) -> Path:
    path = ensure_storage_dirs(storage_dir)
    company_dir = path / company_id
    company_dir.mkdir(exist_ok=True)
    return company_dir


def sanitize_filename(name: str) -> str:
    keep = set("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789._-")
    return "".join(c if c in keep else "_" for c in name)
