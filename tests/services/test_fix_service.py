"""Fix generation and region-scoped writes."""

import os
import stat
from pathlib import Path

import pytest

from driftcheck.core.exceptions import ApplyError, GenerationError
from driftcheck.core.models import DriftIssue
from driftcheck.services.cache_store import CacheStore, MemoryCacheBackend
from driftcheck.services.fix_service import DocFileWriter, DocFixer, FixGenerator
from driftcheck.services.generation import StructuredGenerator
from tests.fixtures.fake_providers import FakeLLMProvider

README = "# Project\n\nCall foo(a) to get a list.\n\nMore text.\n"


def _issue(path: str = "README.md", start: int = 3, end: int = 3) -> DriftIssue:
    return DriftIssue.create(
        path=path,
        start_line=start,
        end_line=end,
        claim="Call foo(a) to get a list.",
        evidence="def foo(a, b):",
        confidence=0.9,
    )


def _fixer(root: Path, llm: FakeLLMProvider) -> DocFixer:
    generator = FixGenerator(StructuredGenerator(llm), CacheStore(MemoryCacheBackend()))
    return DocFixer(generator, DocFileWriter(root))


FIXED = {"FixReplacement": {"replacement": "Call foo(a, b) to get a list."}}


class TestDocFixer:
    @pytest.mark.asyncio
    async def test_replaces_only_the_flagged_region(self, tmp_path: Path):
        (tmp_path / "README.md").write_text(README)
        llm = FakeLLMProvider(FIXED)

        await _fixer(tmp_path, llm).apply(_issue())

        assert (tmp_path / "README.md").read_text() == (
            "# Project\n\nCall foo(a, b) to get a list.\n\nMore text.\n"
        )
        [(_, prompt)] = llm.prompts
        assert "Call foo(a) to get a list." in prompt
        assert "def foo(a, b):" in prompt

    @pytest.mark.asyncio
    async def test_multi_line_replacement_may_change_line_count(self, tmp_path: Path):
        (tmp_path / "README.md").write_text(README)
        llm = FakeLLMProvider(
            {"FixReplacement": {"replacement": "Call foo(a, b).\nIt returns a list.\n"}}
        )

        await _fixer(tmp_path, llm).apply(_issue())

        assert (tmp_path / "README.md").read_text() == (
            "# Project\n\nCall foo(a, b).\nIt returns a list.\n\nMore text.\n"
        )

    @pytest.mark.asyncio
    async def test_same_region_and_claim_is_generated_once(self):
        llm = FakeLLMProvider(FIXED)
        generator = FixGenerator(StructuredGenerator(llm), CacheStore(MemoryCacheBackend()))

        first = await generator.generate(_issue(), "", "Call foo(a) to get a list.", "")
        second = await generator.generate(_issue(), "", "Call foo(a) to get a list.", "")

        assert first == second == "Call foo(a, b) to get a list."
        assert llm.calls["FixReplacement"] == 1

    @pytest.mark.asyncio
    async def test_generation_failure_leaves_file_untouched(self, tmp_path: Path):
        (tmp_path / "README.md").write_text(README)
        llm = FakeLLMProvider({"FixReplacement": RuntimeError("overloaded")})

        with pytest.raises(GenerationError):
            await _fixer(tmp_path, llm).apply(_issue())
        assert (tmp_path / "README.md").read_text() == README


class TestDocFileWriter:
    @pytest.mark.asyncio
    async def test_region_is_relocated_when_lines_shift(self, tmp_path: Path):
        path = tmp_path / "README.md"
        path.write_text(README)
        writer = DocFileWriter(tmp_path)
        issue = _issue()
        _, region, _ = writer.read_region(issue)

        path.write_text("Inserted line.\n" + README)
        await writer.apply(issue, region, "Call foo(a, b) to get a list.")

        assert path.read_text().splitlines()[3] == "Call foo(a, b) to get a list."

    @pytest.mark.asyncio
    async def test_changed_region_is_an_error(self, tmp_path: Path):
        path = tmp_path / "README.md"
        path.write_text(README)
        writer = DocFileWriter(tmp_path)
        issue = _issue()
        _, region, _ = writer.read_region(issue)

        path.write_text(README.replace("foo(a)", "bar(a)"))
        with pytest.raises(ApplyError, match="changed since analysis"):
            await writer.apply(issue, region, "new")

    def test_path_outside_root_is_rejected(self, tmp_path: Path):
        root = tmp_path / "repo"
        root.mkdir()
        (tmp_path / "secret.md").write_text("x\n")

        with pytest.raises(ApplyError, match="outside"):
            DocFileWriter(root).read_region(_issue(path="../secret.md", start=1, end=1))

    def test_line_past_end_is_rejected(self, tmp_path: Path):
        (tmp_path / "README.md").write_text("one line\n")
        with pytest.raises(ApplyError, match="past end"):
            DocFileWriter(tmp_path).read_region(_issue(start=9, end=9))

    def test_read_region_returns_surrounding_context(self, tmp_path: Path):
        (tmp_path / "doc.md").write_text("".join(f"line {n}\n" for n in range(1, 21)))

        before, region, after = DocFileWriter(tmp_path).read_region(
            _issue(path="doc.md", start=10, end=11), context=2
        )

        assert before == "line 8\nline 9"
        assert region == "line 10\nline 11"
        assert after == "line 12\nline 13"

    @pytest.mark.asyncio
    async def test_crlf_line_endings_are_preserved(self, tmp_path: Path):
        path = tmp_path / "README.md"
        path.write_bytes(README.replace("\n", "\r\n").encode())
        writer = DocFileWriter(tmp_path)
        issue = _issue()
        _, region, _ = writer.read_region(issue)

        await writer.apply(issue, region, "Fixed.")

        data = path.read_bytes()
        assert b"\r\nFixed.\r\n" in data
        assert data.count(b"\n") == data.count(b"\r\n")

    @pytest.mark.asyncio
    async def test_missing_final_newline_is_preserved(self, tmp_path: Path):
        path = tmp_path / "doc.md"
        path.write_text("first\nlast")
        writer = DocFileWriter(tmp_path)
        issue = _issue(path="doc.md", start=2, end=2)

        await writer.apply(issue, "last", "LAST")

        assert path.read_text() == "first\nLAST"

    @pytest.mark.asyncio
    async def test_empty_replacement_deletes_the_region(self, tmp_path: Path):
        path = tmp_path / "README.md"
        path.write_text(README)
        writer = DocFileWriter(tmp_path)
        issue = _issue()
        _, region, _ = writer.read_region(issue)

        await writer.apply(issue, region, "")

        assert path.read_text() == "# Project\n\n\nMore text.\n"

    @pytest.mark.asyncio
    async def test_file_mode_is_preserved(self, tmp_path: Path):
        path = tmp_path / "README.md"
        path.write_text(README)
        os.chmod(path, 0o640)
        writer = DocFileWriter(tmp_path)
        issue = _issue()
        _, region, _ = writer.read_region(issue)

        await writer.apply(issue, region, "Fixed.")

        assert stat.S_IMODE(path.stat().st_mode) == 0o640
        assert not [p for p in tmp_path.iterdir() if p.name.endswith(".tmp")]

    @pytest.mark.asyncio
    async def test_aborted_writer_refuses_writes(self, tmp_path: Path):
        path = tmp_path / "README.md"
        path.write_text(README)
        writer = DocFileWriter(tmp_path)
        issue = _issue()
        _, region, _ = writer.read_region(issue)

        writer.abort()
        with pytest.raises(ApplyError, match="aborted"):
            await writer.apply(issue, region, "Fixed.")
        assert path.read_text() == README
