"""Codecov upload over the v4 upload protocol.

Protocol:
1. POST {url}/upload/v4?commit=..&branch=..&build=..&slug=..&pr=..&service=..[&token=..]
   The body of the response is two lines: the report page URL, then a
   pre-signed storage URL.
2. PUT the gzipped payload to the storage URL.

Payload layout::

    <relative path of each file>
    <<<<<< network
    # path=<relative path>
    <file contents>
    <<<<<< EOF
    ...
"""

from __future__ import annotations

import gzip
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import httpx
import structlog

from covrun.config.constants import CODECOV_EOF_MARKER, CODECOV_NETWORK_MARKER, CODECOV_SERVICE
from covrun.config.models import UploadConfig
from covrun.core.errors import UploadError

log = structlog.get_logger()

_PR_REF = re.compile(r"^refs/pull/(\d+)/")


@dataclass(frozen=True, slots=True)
class UploadContext:
    """Commit metadata Codecov attaches the report to."""

    commit: str | None = None
    branch: str | None = None
    build: str | None = None
    slug: str | None = None
    pr: str | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> UploadContext:
        """Read GITHUB_SHA / GITHUB_REF / GITHUB_HEAD_REF / GITHUB_RUN_ID / GITHUB_REPOSITORY."""
        env = os.environ if env is None else env
        ref = env.get("GITHUB_REF", "")
        pr_match = _PR_REF.match(ref)
        if env.get("GITHUB_HEAD_REF"):
            branch: str | None = env["GITHUB_HEAD_REF"]
        elif ref.startswith("refs/heads/"):
            branch = ref[len("refs/heads/") :]
        else:
            branch = None
        return cls(
            commit=env.get("GITHUB_SHA") or None,
            branch=branch,
            build=env.get("GITHUB_RUN_ID") or None,
            slug=env.get("GITHUB_REPOSITORY") or None,
            pr=pr_match.group(1) if pr_match else None,
        )

    def query_params(self) -> dict[str, str]:
        params = {
            "commit": self.commit,
            "branch": self.branch,
            "build": self.build,
            "slug": self.slug,
            "pr": self.pr,
        }
        return {k: v for k, v in params.items() if v}


@dataclass(frozen=True, slots=True)
class UploadReceipt:
    result_url: str
    files: tuple[str, ...]
    bytes_sent: int


def collect_report_files(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.rglob("*") if p.is_file())


def build_payload(directory: Path, files: list[Path]) -> str:
    """Concatenate report files in the layout Codecov's ingestion expects."""
    names = [p.relative_to(directory).as_posix() for p in files]
    parts: list[str] = []
    parts.extend(f"{name}\n" for name in names)
    parts.append(f"{CODECOV_NETWORK_MARKER}\n")
    for name, path in zip(names, files, strict=True):
        content = path.read_text(errors="replace")
        if not content.endswith("\n"):
            content += "\n"
        parts.append(f"# path={name}\n{content}{CODECOV_EOF_MARKER}\n")
    return "".join(parts)


class CodecovUploader:
    """Uploads a report directory to Codecov, once, without retries."""

    def __init__(
        self,
        config: UploadConfig,
        *,
        client: httpx.Client | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._env = os.environ if env is None else env

    @property
    def token(self) -> str | None:
        return self._env.get(self._config.token_env) or None

    def _build_params(self, context: UploadContext) -> dict[str, str]:
        params = context.query_params()
        params["service"] = CODECOV_SERVICE
        if self._config.flags:
            params["flags"] = ",".join(self._config.flags)
        if self._config.name:
            params["name"] = self._config.name
        token = self.token
        if token:
            params["token"] = token
        elif self._config.require_token:
            raise UploadError.missing_token(self._config.token_env)
        return params

    def upload(self, directory: Path, context: UploadContext) -> UploadReceipt:
        """Send every file under ``directory``.

        Raises:
            UploadError: Missing token (when required), empty directory,
                transport errors, or unexpected responses.
        """
        files = collect_report_files(directory)
        if not files:
            raise UploadError.nothing_to_send(str(directory))

        params = self._build_params(context)
        payload = gzip.compress(build_payload(directory, files).encode())
        endpoint = f"{self._config.url.rstrip('/')}/upload/v4"

        client = self._client or httpx.Client(timeout=self._config.timeout_sec)
        try:
            log.info(
                "upload_start",
                endpoint=endpoint,
                files=len(files),
                commit=context.commit,
                tokenless="token" not in params,
            )
            try:
                response = client.post(
                    endpoint,
                    params=params,
                    headers={
                        "Accept": "text/plain",
                        "X-Reduced-Redundancy": "false",
                        "X-Content-Type": "application/x-gzip",
                    },
                )
            except httpx.HTTPError as e:
                raise UploadError.request_failed(endpoint, type(e).__name__) from e

            if response.status_code != 200:
                raise UploadError.bad_response(response.status_code, response.text)

            lines = [line.strip() for line in response.text.splitlines() if line.strip()]
            if len(lines) < 2:
                raise UploadError.bad_response(response.status_code, response.text)
            result_url, storage_url = lines[0], lines[1]

            try:
                put = client.put(
                    storage_url,
                    content=payload,
                    headers={
                        "Content-Type": "application/x-gzip",
                        "Content-Encoding": "gzip",
                    },
                )
            except httpx.HTTPError as e:
                raise UploadError.request_failed("storage", type(e).__name__) from e

            if put.status_code >= 300:
                raise UploadError.bad_response(put.status_code, put.text)
        finally:
            if self._client is None:
                client.close()

        log.info("upload_done", result_url=result_url, bytes=len(payload))
        return UploadReceipt(
            result_url=result_url,
            files=tuple(p.relative_to(directory).as_posix() for p in files),
            bytes_sent=len(payload),
        )
