from __future__ import annotations

import logging
import re
from pathlib import Path

from campus_portal.config import Settings, get_settings
from campus_portal.errors import InvalidResume

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def resume_key(branch: str, registration_no: str) -> str:
    """One object per student: a re-upload lands on the same key."""
    safe_branch = _UNSAFE_KEY_CHARS.sub("_", branch.strip())
    safe_reg = _UNSAFE_KEY_CHARS.sub("_", registration_no.strip())
    if not safe_branch or not safe_reg:
        raise InvalidResume("branch and registration number are required for the resume key")
    return f"{safe_branch}/{safe_reg}.pdf"


class ResumeStore:
    """Filesystem object store for resumes, served read-only under a public URL prefix.

    Objects are addressed by the URL saved on the student, so a resume stays
    reachable after the student's branch (and therefore the key) changes.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.root = Path(self.settings.resume_dir)

    def validate(self, content: bytes, content_type: str | None) -> None:
        if content_type != PDF_CONTENT_TYPE:
            raise InvalidResume("Only PDF files are allowed for resume upload")
        if not content:
            raise InvalidResume("Resume file is empty")
        if len(content) > self.settings.resume_max_bytes:
            limit_mb = self.settings.resume_max_bytes / (1024 * 1024)
            raise InvalidResume(f"File size must be less than {limit_mb:g}MB")

    def store(
        self,
        content: bytes,
        *,
        branch: str,
        registration_no: str,
        content_type: str | None,
        replaces: str | None = None,
    ) -> str:
        self.validate(content, content_type)
        key = resume_key(branch, registration_no)
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = path.with_suffix(".pdf.part")
        tmp_path.write_bytes(content)
        tmp_path.replace(path)
        logger.info("Stored resume key=%s size=%s", key, len(content))

        url = self.public_url(key)
        if replaces and replaces != url:
            self.delete(replaces)
        return url

    def relocate(self, url: str, *, branch: str, registration_no: str) -> str | None:
        """Move an existing resume to the key for a new branch.

        Returns the new URL, or ``None`` when the stored object is already gone.
        """
        key = resume_key(branch, registration_no)
        new_url = self.public_url(key)
        if new_url == url:
            return url

        source = self._path_for_url(url)
        if source is None or not source.is_file():
            logger.warning("Resume object missing for url=%s, dropping it", url)
            return None

        target = self._path(key)
        target.parent.mkdir(parents=True, exist_ok=True)
        source.replace(target)
        logger.info("Moved resume %s -> key=%s", url, key)
        return new_url

    def delete(self, url: str) -> bool:
        path = self._path_for_url(url)
        if path is None or not path.is_file():
            logger.warning("Resume object missing for url=%s", url)
            return False
        path.unlink()
        logger.info("Deleted resume url=%s", url)
        return True

    def public_url(self, key: str) -> str:
        return f"{self._url_prefix()}/{key}"

    def _url_prefix(self) -> str:
        return self.settings.resume_public_base_url.rstrip("/")

    def _path(self, key: str) -> Path:
        return self.root / key

    def _path_for_url(self, url: str) -> Path | None:
        prefix = self._url_prefix() + "/"
        if not url.startswith(prefix):
            return None

        root = self.root.resolve()
        path = (self.root / url[len(prefix):]).resolve()
        # keys never leave the resume root
        if root not in path.parents:
            return None
        return path
