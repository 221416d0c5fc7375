"""Best-effort Surveyor-General diagram fetcher.

Downloads run an external, browser-automation command out of process::

    <command> --docref "SG 6814/1949" --out data/sg/SG_6814_1949.pdf

The command is brittle by nature (it scrapes a government portal), so every
outcome other than "exit 0 and the file exists" is recorded as a failed
artifact rather than raised. Artifacts live in memory, keyed by docref, up to
``max_artifacts`` entries. Beyond that the oldest settled artifacts are
forgotten and report ``not_requested`` again. The address pipeline never
calls this service.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import shlex
from pathlib import Path

from preplan.core.config import SurveyConfig
from preplan.survey.models import SurveyDiagram, SurveyDiagramStatus

logger = logging.getLogger(__name__)

EXIT_MESSAGES = {
    2: "Fetcher rejected its arguments (docref/out missing).",
    3: "Browser automation is not installed for the fetcher.",
}


def diagram_filename(docref: str) -> str:
    slug = re.sub(r"[^A-Za-z0-9]+", "_", docref).strip("_")
    return f"{slug or 'diagram'}.pdf"


class SurveyDiagramService:
    """Runs diagram downloads and tracks their status per docref."""

    def __init__(self, config: SurveyConfig) -> None:
        self.config = config
        self._diagrams: dict[str, SurveyDiagram] = {}
        self._tasks: set[asyncio.Task] = set()

    def get(self, docref: str) -> SurveyDiagram:
        docref = docref.strip()
        existing = self._diagrams.get(docref)
        if existing is not None:
            return existing
        return SurveyDiagram(docref=docref, portal_url=self.config.portal_url)

    def request(self, docref: str) -> SurveyDiagram:
        """Start a background download unless one is running or already done."""
        docref = self._validate(docref)
        current = self.get(docref)
        if current.status in (SurveyDiagramStatus.PENDING, SurveyDiagramStatus.DOWNLOADED):
            return current

        pending = self._record(docref, SurveyDiagramStatus.PENDING)
        task = asyncio.create_task(self._run(docref), name=f"sg:{docref}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return pending

    async def fetch(self, docref: str) -> SurveyDiagram:
        """Download now and return the final artifact."""
        docref = self._validate(docref)
        self._record(docref, SurveyDiagramStatus.PENDING)
        return await self._run(docref)

    async def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    # -- internal ------------------------------------------------------------

    @staticmethod
    def _validate(docref: str) -> str:
        if not docref or not docref.strip():
            raise ValueError("docref is required")
        return docref.strip()

    def _record(
        self,
        docref: str,
        status: SurveyDiagramStatus,
        path: str | None = None,
        message: str | None = None,
    ) -> SurveyDiagram:
        diagram = SurveyDiagram(
            docref=docref,
            status=status,
            path=path,
            message=message,
            portal_url=self.config.portal_url,
        )
        self._diagrams.pop(docref, None)
        self._diagrams[docref] = diagram
        self._evict(keep=docref)
        return diagram

    def _evict(self, keep: str) -> None:
        # Oldest settled artifacts go first; pending downloads and ``keep`` stay.
        excess = len(self._diagrams) - self.config.max_artifacts
        if excess <= 0:
            return
        settled = [
            docref
            for docref, diagram in self._diagrams.items()
            if diagram.status != SurveyDiagramStatus.PENDING and docref != keep
        ]
        for docref in settled[:excess]:
            del self._diagrams[docref]

    async def _run(self, docref: str) -> SurveyDiagram:
        if not self.config.command:
            return self._failed(docref, "Survey diagram fetcher is not configured.")

        out_path = Path(self.config.output_dir) / diagram_filename(docref)
        try:
            out_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            return self._failed(docref, f"Could not create output directory: {exc}")
        args = [*shlex.split(self.config.command), "--docref", docref, "--out", str(out_path)]
        env = {**os.environ, "CSG_PORTAL_URL": self.config.portal_url}

        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except OSError as exc:
            return self._failed(docref, f"Could not start fetcher: {exc}")

        try:
            async with asyncio.timeout(self.config.timeout_seconds):
                _, stderr = await proc.communicate()
        except TimeoutError:
            proc.kill()
            await proc.wait()
            return self._failed(
                docref, f"Fetcher timed out after {self.config.timeout_seconds:.0f}s."
            )

        if proc.returncode == 0 and out_path.exists():
            logger.info("Downloaded SG diagram %s to %s", docref, out_path)
            return self._record(docref, SurveyDiagramStatus.DOWNLOADED, path=str(out_path))

        if proc.returncode == 0:
            return self._failed(docref, "Fetcher finished without writing the diagram.")

        detail = stderr.decode("utf-8", errors="replace").strip().splitlines()
        message = EXIT_MESSAGES.get(proc.returncode) or (
            detail[-1] if detail else f"Fetcher exited with code {proc.returncode}."
        )
        return self._failed(docref, message)

    def _failed(self, docref: str, message: str) -> SurveyDiagram:
        logger.warning("SG diagram %s failed: %s", docref, message)
        return self._record(docref, SurveyDiagramStatus.FAILED, message=message)
