"""Tests for the one-shot job CLI."""
import json

from app.cli import run_job
from app.core.exceptions import DirectoryError
from app.services.models import BackfillSummary, SyncSummary


def last_json_line(capsys):
    return json.loads(capsys.readouterr().out.strip().splitlines()[-1])


class StubContainer:
    instances = []

    def __init__(self, sync_result=None, error=None):
        self.cleaned = False
        self.reconciliation_service = self
        self.fingerprint_backfill_service = self
        self._sync_result = sync_result or SyncSummary(new=1)
        self._error = error
        StubContainer.instances.append(self)

    async def initialize(self):
        pass

    async def cleanup(self):
        self.cleaned = True

    async def sync_employees(self):
        if self._error:
            raise self._error
        return self._sync_result

    async def update_missing_fingerprints(self):
        return BackfillSummary(total=2, updated=2)


async def test_sync_prints_summary(monkeypatch, capsys):
    monkeypatch.setattr(run_job, "ServiceContainer", StubContainer)

    assert await run_job.run("sync") == 0

    output = last_json_line(capsys)
    assert output == {"success": True, "result": {"new": 1, "updated": 0, "ignored": 0, "errored": 0}}
    assert StubContainer.instances[-1].cleaned


async def test_fingerprints_prints_summary(monkeypatch, capsys):
    monkeypatch.setattr(run_job, "ServiceContainer", StubContainer)

    assert await run_job.run("fingerprints") == 0

    output = last_json_line(capsys)
    assert output["result"]["updated"] == 2


async def test_failure_exits_non_zero(monkeypatch, capsys):
    monkeypatch.setattr(
        run_job, "ServiceContainer",
        lambda: StubContainer(error=DirectoryError("directory unreachable")),
    )

    assert await run_job.run("sync") == 1

    output = last_json_line(capsys)
    assert output == {"success": False, "error": "directory unreachable"}
    assert StubContainer.instances[-1].cleaned
