"""Tests for output path resolution, confinement and per-path locking."""

import os
import stat
import threading
import time

import pytest

from office_whisperer.paths import OutputPaths, PathLocks, replace_suffix


class TestReplaceSuffix:

    @pytest.mark.parametrize("path,expected", [
        ("data.xlsx", "data.json"),
        ("data.XLSX", "data.json"),
        ("old.xls", "old.json"),
        ("archive.xlsx.bak", "archive.xlsx.bak"),
    ])
    def test_excel_suffix(self, path, expected):
        assert replace_suffix(path, r"\.xlsx?", ".json") == expected


class TestOutputPathsUnconfined:

    def test_root_defaults_to_cwd(self):
        assert OutputPaths().root == os.getcwd()

    def test_edit_target_keeps_input_directory(self, tmp_path):
        paths = OutputPaths()
        source = str(tmp_path / "in" / "book.xlsx")
        assert paths.edit_target(source) == source

    def test_edit_target_uses_output_path(self, tmp_path):
        paths = OutputPaths()
        target = paths.edit_target(str(tmp_path / "in" / "book.xlsx"), str(tmp_path / "out"))
        assert target == str(tmp_path / "out" / "book.xlsx")

    def test_in_directory(self, tmp_path):
        assert OutputPaths().in_directory("a.docx", str(tmp_path)) == str(tmp_path / "a.docx")

    def test_file_or_default(self, tmp_path):
        paths = OutputPaths()
        assert paths.file_or_default(str(tmp_path / "x.docx"), "merged.docx") == str(tmp_path / "x.docx")
        assert paths.file_or_default(None, "merged.docx") == os.path.join(os.getcwd(), "merged.docx")


class TestOutputPathsConfined:

    def test_data_path_created_private(self, sandbox):
        mode = stat.S_IMODE(os.stat(sandbox.data_path).st_mode)
        assert mode == 0o700

    def test_root_is_data_path(self, sandbox):
        assert sandbox.root == sandbox.data_path

    def test_relative_path_stays_inside(self, sandbox):
        assert sandbox.resolve("reports/q1.xlsx") == os.path.join(sandbox.data_path, "reports", "q1.xlsx")

    def test_outside_path_rerooted(self, sandbox):
        assert sandbox.resolve("/etc/passwd") == os.path.join(sandbox.data_path, "passwd")

    def test_traversal_rerooted(self, sandbox):
        assert sandbox.resolve("../../escape.docx") == os.path.join(sandbox.data_path, "escape.docx")

    def test_inside_absolute_path_kept(self, sandbox):
        inside = os.path.join(sandbox.data_path, "deck.pptx")
        assert sandbox.resolve(inside) == inside

    def test_create_tool_confined(self, sandbox, tmp_path):
        from office_whisperer.generators import ExcelGenerator
        from office_whisperer.tools import ExcelTools

        tools = ExcelTools(ExcelGenerator(), sandbox)
        tools.create_excel({"filename": "out.xlsx", "outputPath": str(tmp_path / "elsewhere"),
                            "sheets": [{"name": "S", "data": [[1]]}]})
        assert os.path.exists(os.path.join(sandbox.data_path, "out.xlsx"))
        assert not (tmp_path / "elsewhere" / "out.xlsx").exists()


class TestWrite:

    def test_write_creates_private_file_and_dirs(self, tmp_path):
        target = tmp_path / "nested" / "dir" / "file.txt"
        size = OutputPaths().write(str(target), "héllo")
        assert size == len("héllo".encode("utf-8"))
        assert target.read_text(encoding="utf-8") == "héllo"
        assert stat.S_IMODE(os.stat(target).st_mode) == 0o600
        assert stat.S_IMODE(os.stat(target.parent).st_mode) == 0o700

    def test_write_overwrites(self, tmp_path):
        target = tmp_path / "file.bin"
        paths = OutputPaths()
        paths.write(str(target), b"long content")
        paths.write(str(target), b"short")
        assert target.read_bytes() == b"short"


class TestPathLocks:

    def test_entry_dropped_after_release(self, tmp_path):
        locks = PathLocks()
        with locks.hold(str(tmp_path / "a.xlsx")):
            with locks.hold(str(tmp_path / "b.xlsx")):
                assert len(locks) == 2
            assert len(locks) == 1
        assert len(locks) == 0

    def test_entry_dropped_after_error(self, tmp_path):
        locks = PathLocks()
        with pytest.raises(RuntimeError):
            with locks.hold(str(tmp_path / "a.xlsx")):
                raise RuntimeError("boom")
        assert len(locks) == 0

    def test_many_paths_do_not_accumulate(self, tmp_path):
        locks = PathLocks()
        for i in range(50):
            with locks.hold(str(tmp_path / f"{i}.docx")):
                pass
        assert len(locks) == 0

    def test_same_path_serialized(self, tmp_path):
        locks = PathLocks()
        path = str(tmp_path / "a.xlsx")
        events = []

        def worker(name):
            with locks.hold(path):
                events.append(f"{name}-start")
                time.sleep(0.05)
                events.append(f"{name}-end")

        threads = [threading.Thread(target=worker, args=(n,)) for n in ("one", "two")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        # each critical section completes before the next one starts
        assert events[0].split("-")[0] == events[1].split("-")[0]
        assert events[2].split("-")[0] == events[3].split("-")[0]
        assert len(locks) == 0

    def test_concurrent_edits_both_applied(self, sample_workbook):
        from openpyxl import load_workbook
        from office_whisperer.generators import ExcelGenerator
        from office_whisperer.tools import ExcelTools

        tools = ExcelTools(ExcelGenerator(), OutputPaths())

        def append(value):
            tools.excel_add_rows({"filename": sample_workbook, "rows": [[value]], "sheetName": "Sales"})

        threads = [threading.Thread(target=append, args=(v,)) for v in ("first", "second")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        ws = load_workbook(sample_workbook)["Sales"]
        assert ws.max_row == 6
        assert {ws["A5"].value, ws["A6"].value} == {"first", "second"}
