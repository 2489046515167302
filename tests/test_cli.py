"""
Tests for the command-line interface.
"""

import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path

from fortress_fixtures import FLOOR, block_dict, snapshot, tile

from fortress_vox.cli import create_parser, main


class TestCli(unittest.TestCase):
    """Tests for the fortvox commands."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)
        self.snapshot = self.root / "fortress.json"
        data = snapshot(blocks=[block_dict(0, 0, 100, {(1, 1): tile(FLOOR)})])
        self.snapshot.write_text(json.dumps(data), encoding="utf-8")

    def tearDown(self):
        self.tmp.cleanup()

    def run_cli(self, *argv):
        out, err = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            code = main(list(argv))
        return code, out.getvalue(), err.getvalue()

    def test_parser(self):
        args = create_parser().parse_args(["export", "-10", "0", "out.vox", "--snapshot", "f.json"])
        assert (args.low, args.high, args.dest) == (-10, 0, "out.vox")
        assert args.month is None

    def test_probe(self):
        code, out, _ = self.run_cli("probe", "--snapshot", str(self.snapshot))
        assert code == 0
        assert "World: Testworld" in out
        assert "Elevations: 100 to 102" in out
        assert "Current month: Granite" in out
        assert "Blocks: 1" in out

    def test_dump_lists(self):
        lists = self.root / "lists.json"
        code, _, _ = self.run_cli("dump-lists", "--snapshot", str(self.snapshot), str(lists))
        assert code == 0
        data = json.loads(lists.read_text(encoding="utf-8"))
        assert "blocks" not in data
        assert data["building_definitions"]

    def test_export(self):
        dest = self.root / "out.vox"
        code, out, _ = self.run_cli("export", "100", "100", str(dest), "--snapshot", str(self.snapshot))
        assert code == 0
        assert "Exported: " in out
        assert dest.read_bytes()[:4] == b"VOX "

    def test_export_month(self):
        dest = self.root / "timber.vox"
        code, _, _ = self.run_cli(
            "export", "100", "100", str(dest), "--month", "Timber", "--snapshot", str(self.snapshot)
        )
        assert code == 0
        assert dest.exists()

    def test_bad_month(self):
        dest = self.root / "out.vox"
        code, _, err = self.run_cli(
            "export", "100", "100", str(dest), "--month", "Brumaire", "--snapshot", str(self.snapshot)
        )
        assert code == 1
        assert "Brumaire" in err
        assert not dest.exists()

    def test_bad_range(self):
        code, _, err = self.run_cli("export", "5", "1", str(self.root / "out.vox"), "--snapshot", str(self.snapshot))
        assert code == 1
        assert "Error:" in err

    def test_missing_snapshot(self):
        code, _, err = self.run_cli("probe", "--snapshot", str(self.root / "absent.json"))
        assert code == 1
        assert "Cannot read snapshot" in err

    def test_export_year(self):
        seasons = self.root / "seasons"
        code, out, _ = self.run_cli("export-year", "100", "100", str(seasons), "--snapshot", str(self.snapshot))
        assert code == 0
        assert "Exported 12 scenes" in out
        assert (seasons / "09-Timber.vox").exists()


if __name__ == "__main__":
    unittest.main(verbosity=2)
