from __future__ import annotations

from pathlib import Path
from unittest.mock import patch
import os
import tempfile
import unittest

from scaffolder.errors import RenderFailed
from scaffolder.materialize import (
    collect_render_targets,
    copy_template,
    effective_ignore,
    is_ignored,
    render_tree,
)


CONTEXT = {"projectName": "my-app", "version": "1.0.0"}


class IgnorePatternTests(unittest.TestCase):
    def test_double_star_matches_top_level(self) -> None:
        self.assertTrue(is_ignored("logo.png", ["**/*.png"]))
        self.assertTrue(is_ignored("public/img/logo.png", ["**/*.png"]))

    def test_patterns_without_slash_match_basenames(self) -> None:
        self.assertTrue(is_ignored("src/assets/icon.ico", ["*.ico"]))
        self.assertFalse(is_ignored("src/assets/icon.svg", ["*.ico"]))

    def test_directory_patterns(self) -> None:
        self.assertTrue(is_ignored("public/index.html", ["public/**"]))
        self.assertTrue(is_ignored("node_modules/", effective_ignore([])))
        self.assertTrue(is_ignored("packages/a/node_modules/x/index.js", effective_ignore([])))

    def test_single_star_stays_within_one_directory(self) -> None:
        self.assertTrue(is_ignored("src/a.js", ["src/*.js"]))
        self.assertFalse(is_ignored("src/lib/deep.js", ["src/*.js"]))
        self.assertTrue(is_ignored("src/lib/deep.js", ["src/**/*.js"]))
        self.assertFalse(is_ignored("src/lib/", ["src/*.js"]))

    def test_question_mark_and_classes_stay_within_one_directory(self) -> None:
        self.assertTrue(is_ignored("docs/a.md", ["docs/?.md"]))
        self.assertFalse(is_ignored("docs/a/b.md", ["docs/?.md"]))
        self.assertTrue(is_ignored("img/b.png", ["img/[ab].png"]))
        self.assertTrue(is_ignored("img/b.png", ["img/[!c-z].png"]))
        self.assertFalse(is_ignored("img/c.png", ["img/[!c-z].png"]))

    def test_effective_ignore_dedupes_and_keeps_order(self) -> None:
        self.assertEqual(
            effective_ignore(["*.png", "**/node_modules/**", "*.png"]),
            ("**/node_modules/**", "*.png"),
        )


class MaterializeTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.source = self.root / "template"
        self.target = self.root / "target"
        (self.source / "src").mkdir(parents=True)
        (self.source / "public").mkdir()
        (self.source / "node_modules" / "dep").mkdir(parents=True)
        (self.source / "package.json").write_text('{"name": "<%= projectName %>", "version": "<%= version %>"}')
        (self.source / "src" / "index.js").write_text("console.log('<%= projectName %>');\n")
        (self.source / "public" / "index.html").write_text("<div><%= raw %></div>")
        (self.source / "node_modules" / "dep" / "index.js").write_text("<%= untouched %>")
        (self.source / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n\xff\xfe<%= projectName %>")

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_copy_creates_target_and_overwrites(self) -> None:
        self.target.mkdir()
        (self.target / "package.json").write_text("old")
        (self.target / "keep.txt").write_text("keep")
        copy_template(self.source, self.target)
        self.assertIn("<%= projectName %>", (self.target / "package.json").read_text())
        self.assertEqual((self.target / "keep.txt").read_text(), "keep")
        self.assertTrue((self.target / "node_modules" / "dep" / "index.js").exists())

    def test_collect_skips_ignored_paths(self) -> None:
        copy_template(self.source, self.target)
        targets = [path.relative_to(self.target).as_posix() for path in collect_render_targets(self.target, ["public/**"])]
        self.assertEqual(targets, ["logo.png", "package.json", "src/index.js"])

    def test_render_tree_substitutes_context(self) -> None:
        copy_template(self.source, self.target)
        written = render_tree(self.target, CONTEXT, ignore=["public/**"], max_workers=2)
        self.assertEqual(
            (self.target / "package.json").read_text(),
            '{"name": "my-app", "version": "1.0.0"}',
        )
        self.assertEqual((self.target / "src" / "index.js").read_text(), "console.log('my-app');\n")
        self.assertEqual(sorted(path.name for path in written), ["index.js", "package.json"])

    def test_foreign_mustache_files_render_untouched(self) -> None:
        vue = "<template>\n  <div>{{ msg }}</div>\n</template>\n"
        workflow = "on: push\njobs:\n  build:\n    if: ${{ github.ref == 'refs/heads/main' }}\n"
        (self.source / "src" / "App.vue").write_text(vue)
        (self.source / ".github" / "workflows").mkdir(parents=True)
        (self.source / ".github" / "workflows" / "ci.yml").write_text(workflow)
        copy_template(self.source, self.target)

        written = render_tree(self.target, CONTEXT, ignore=["public/**"])

        self.assertEqual((self.target / "src" / "App.vue").read_text(), vue)
        self.assertEqual((self.target / ".github" / "workflows" / "ci.yml").read_text(), workflow)
        self.assertNotIn(self.target / "src" / "App.vue", written)

    def test_ignored_files_keep_their_bytes(self) -> None:
        copy_template(self.source, self.target)
        ignored = {
            self.target / "public" / "index.html": (self.target / "public" / "index.html").read_bytes(),
            self.target / "node_modules" / "dep" / "index.js": (self.target / "node_modules" / "dep" / "index.js").read_bytes(),
        }
        render_tree(self.target, CONTEXT, ignore=["public/**"])
        for path, content in ignored.items():
            self.assertEqual(path.read_bytes(), content)

    def test_binary_files_are_not_rendered(self) -> None:
        copy_template(self.source, self.target)
        before = (self.target / "logo.png").read_bytes()
        render_tree(self.target, CONTEXT, ignore=["public/**"])
        self.assertEqual((self.target / "logo.png").read_bytes(), before)

    def test_failed_render_leaves_every_file_unchanged(self) -> None:
        copy_template(self.source, self.target)
        snapshot = {
            path: path.read_bytes()
            for path in self.target.rglob("*")
            if path.is_file()
        }
        with self.assertRaises(RenderFailed) as ctx:
            render_tree(self.target, CONTEXT)
        self.assertEqual(list(ctx.exception.failures), ["public/index.html"])
        for path, content in snapshot.items():
            self.assertEqual(path.read_bytes(), content)

    def test_write_failure_is_reported(self) -> None:
        copy_template(self.source, self.target)
        with patch("scaffolder.materialize.os.replace", side_effect=PermissionError("read-only")):
            with self.assertRaises(RenderFailed):
                render_tree(self.target, CONTEXT, ignore=["public/**"])
        leftovers = [path for path in self.target.rglob("*.tmp")]
        self.assertEqual(leftovers, [])

    @unittest.skipIf(os.name == "nt", "POSIX permissions")
    def test_render_preserves_file_mode(self) -> None:
        script = self.source / "bin.js"
        script.write_text("#!/usr/bin/env node\n// <%= projectName %>\n")
        script.chmod(0o755)
        copy_template(self.source, self.target)
        render_tree(self.target, CONTEXT, ignore=["public/**"])
        self.assertEqual((self.target / "bin.js").stat().st_mode & 0o777, 0o755)


if __name__ == "__main__":
    unittest.main()
