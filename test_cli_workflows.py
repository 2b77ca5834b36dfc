from __future__ import annotations

import gzip
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

from seekgz.reader import open_reader


class CLIIntegrationTests(unittest.TestCase):
    def run_cli(self, args, *, expect: int | None = 0, cwd: Path | None = None):
        cmd = [sys.executable, "-m", "seekgz.cli"] + list(args)
        env = os.environ.copy()
        repo_root = Path(__file__).resolve().parent
        existing = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = str(repo_root) if not existing else f"{repo_root}{os.pathsep}{existing}"
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env=env,
        )
        if expect is not None and proc.returncode != expect:
            raise AssertionError(
                f"CLI exited {proc.returncode}, expected {expect}\nCommand: {' '.join(cmd)}\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}"
            )
        return proc

    def test_pack_list_cat_verify(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "a.txt").write_bytes(b"first file")
            (root / "b.txt").write_bytes(b"second file, a little longer")
            (root / "c.txt").write_bytes(b"third")
            archive = root / "out.gz"

            proc = self.run_cli(["pack", str(archive), str(root / "a.txt"), str(root / "b.txt"), str(root / "c.txt")])
            self.assertIn("3 block(s)", proc.stdout)
            with gzip.open(archive, "rb") as g:
                self.assertEqual(g.read(), b"first file\n\nsecond file, a little longer\n\nthird")

            listing = self.run_cli(["list", str(archive)]).stdout.splitlines()
            self.assertEqual(listing[0], "0\t0\t0\t10")
            self.assertEqual(listing[1], "1\t0\t12\t28")
            self.assertEqual(len(listing), 3)

            cat = self.run_cli(["cat", str(archive), "2", "0"])
            self.assertEqual(cat.stdout, "thirdfirst file")

            verify = self.run_cli(["verify", str(archive)])
            self.assertIn("OK", verify.stdout)

            info = self.run_cli(["info", str(archive)])
            self.assertIn("Blocks: 3", info.stdout)
            self.assertIn("Frames: 1", info.stdout)

    def test_pack_split_with_small_frames(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            paragraphs = [("paragraph %d " % i).encode() * 20 for i in range(40)]
            src = root / "text.txt"
            src.write_bytes(b"\n\n".join(paragraphs))
            archive = root / "text.gz"
            self.run_cli(["pack", "--split", "--limit", "1000", "--quiet", str(archive), str(src)])
            with open_reader(archive) as r:
                self.assertEqual(r.block_count(), len(paragraphs))
                self.assertGreater(r.frame_count(), 1)
                self.assertEqual(r.read_block(17), paragraphs[17])
            self.assertIn("OK", self.run_cli(["verify", str(archive)]).stdout)

    def test_errors(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            plain = root / "plain.gz"
            plain.write_bytes(gzip.compress(b"a plain gzip file without an index", mtime=0))
            proc = self.run_cli(["info", str(plain)], expect=2)
            self.assertIn("not a seekgz archive", proc.stderr)

            (root / "a.txt").write_bytes(b"x")
            archive = root / "one.gz"
            self.run_cli(["pack", str(archive), str(root / "a.txt")])
            proc = self.run_cli(["cat", str(archive), "5"], expect=2)
            self.assertIn("Error:", proc.stderr)

            proc = self.run_cli(["list", str(root / "missing.gz")], expect=2)
            self.assertIn("Error:", proc.stderr)

    def test_pack_missing_input_leaves_no_archive(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "a.txt").write_bytes(b"present")
            archive = root / "out.gz"
            proc = self.run_cli(["pack", str(archive), str(root / "a.txt"), str(root / "missing.txt")], expect=2)
            self.assertIn("Error:", proc.stderr)
            self.assertFalse(archive.exists())

            proc = self.run_cli(["pack", "--split", str(archive), str(root / "missing.txt")], expect=2)
            self.assertFalse(archive.exists())



if __name__ == "__main__":
    unittest.main()
