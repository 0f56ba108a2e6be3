from __future__ import annotations

from pathlib import Path
import io
import tarfile
import tempfile
import unittest

import zstandard as zstd

from scaffolder.archive import ArchiveError, detect_format, extract_archive


def _tar_bytes(files: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as tar:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


class ExtractArchiveTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _write_tgz(self, name: str, files: dict[str, bytes]) -> Path:
        path = self.root / name
        with tarfile.open(path, "w:gz") as tar:
            for member, data in files.items():
                info = tarfile.TarInfo(member)
                info.size = len(data)
                tar.addfile(info, io.BytesIO(data))
        return path

    def test_strips_single_package_root(self) -> None:
        archive = self._write_tgz(
            "tpl.tgz",
            {"package/package.json": b"{}", "package/template/index.js": b"x"},
        )
        dest = self.root / "out"
        count = extract_archive(archive, dest)
        self.assertEqual(count, 2)
        self.assertTrue((dest / "package.json").is_file())
        self.assertEqual((dest / "template" / "index.js").read_bytes(), b"x")

    def test_keeps_layout_without_common_root(self) -> None:
        archive = self._write_tgz("flat.tgz", {"a.txt": b"a", "b/c.txt": b"c"})
        dest = self.root / "out"
        extract_archive(archive, dest)
        self.assertTrue((dest / "a.txt").is_file())
        self.assertTrue((dest / "b" / "c.txt").is_file())

    def test_single_top_level_file_is_not_stripped(self) -> None:
        archive = self._write_tgz("one.tgz", {"README.md": b"hi"})
        dest = self.root / "out"
        extract_archive(archive, dest)
        self.assertEqual((dest / "README.md").read_bytes(), b"hi")

    def test_rejects_path_traversal(self) -> None:
        archive = self._write_tgz("evil.tgz", {"package/ok.txt": b"ok", "package/../../evil.txt": b"x"})
        with self.assertRaises(ArchiveError):
            extract_archive(archive, self.root / "out")
        self.assertFalse((self.root / "evil.txt").exists())

    def test_extracts_zstandard_archives(self) -> None:
        payload = zstd.ZstdCompressor().compress(_tar_bytes({"package/template/a.txt": b"zst"}))
        archive = self.root / "tpl.tar.zst"
        archive.write_bytes(payload)
        dest = self.root / "out"
        extract_archive(archive, dest)
        self.assertEqual((dest / "template" / "a.txt").read_bytes(), b"zst")

    def test_detects_format_from_magic_bytes(self) -> None:
        archive = self._write_tgz("artifact", {"package/a.txt": b"a"})
        self.assertEqual(detect_format(archive), "gztar")
        dest = self.root / "out"
        extract_archive(archive, dest)
        self.assertTrue((dest / "a.txt").is_file())

    def test_corrupt_archive(self) -> None:
        archive = self.root / "broken.tgz"
        archive.write_bytes(b"\x1f\x8bnot really gzip")
        with self.assertRaises(ArchiveError):
            extract_archive(archive, self.root / "out")

    def test_missing_archive(self) -> None:
        with self.assertRaises(FileNotFoundError):
            extract_archive(self.root / "missing.tgz", self.root / "out")


if __name__ == "__main__":
    unittest.main()
