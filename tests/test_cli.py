from __future__ import annotations

import json
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]


def run_cli(*args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [sys.executable, '-m', 'boron.cli', *args],
        cwd=PROJECT_ROOT,
        text=True,
        capture_output=True,
        check=False,
    )


class CLITests(unittest.TestCase):
    def test_compile_inline_to_stdout(self) -> None:
        result = run_cli('compile', '--code', 'main() { print(1 + 2); }')
        self.assertEqual(result.returncode, 0, msg=result.stderr)
        self.assertIn('printf("%d\\n", (1 + 2));', result.stdout)
        self.assertEqual(result.stderr, '')

    def test_check_ok(self) -> None:
        result = run_cli('check', '--code', 'add(int a, int b) -> int { return a + b; }\nmain() { print(add(1, 2)); }')
        self.assertEqual(result.returncode, 0)
        self.assertEqual(result.stdout.strip(), 'OK')

    def test_check_library_without_main(self) -> None:
        result = run_cli('check', '--library', '--code', 'twice(int a) -> int { return a * 2; }')
        self.assertEqual(result.returncode, 0)
        self.assertEqual(result.stdout.strip(), 'OK')

    def test_explain_json(self) -> None:
        result = run_cli('explain', '--code', 'struct P { int x, }\nmain() {}')
        self.assertEqual(result.returncode, 0)
        payload = json.loads(result.stdout)
        self.assertEqual(payload['entry'], 'main')
        self.assertEqual(payload['ast']['node_type'], 'Program')
        self.assertEqual(payload['symbols']['structs']['P'], [{'name': 'x', 'type': 'int'}])

    def test_compile_error_goes_to_stderr(self) -> None:
        result = run_cli('compile', '--code', 'helper() {}')
        self.assertEqual(result.returncode, 1)
        self.assertEqual(result.stdout, '')
        self.assertIn('RES004', result.stderr)

    def test_parse_error_reports_position(self) -> None:
        result = run_cli('check', '--code', 'main() {\n  let x: 1\n}')
        self.assertEqual(result.returncode, 1)
        self.assertIn('PAR002 <inline>:3:1', result.stderr)

    def test_missing_source_is_a_usage_error(self) -> None:
        result = run_cli('compile')
        self.assertEqual(result.returncode, 2)
        self.assertIn('CLI001', result.stderr)

    def test_invalid_date_is_rejected(self) -> None:
        result = run_cli('compile', '--code', 'main() {}', '--date', '18/10/26')
        self.assertEqual(result.returncode, 2)

    def test_compile_project_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / 'src' / 'geo').mkdir(parents=True)
            (root / 'src' / 'geo' / 'shapes.brn').write_text(
                'struct Point { int x, int y, }\nlen(Point p) -> int { return p.x + p.y; }\n',
                encoding='utf-8',
            )
            (root / 'app.brn').write_text(
                'import geo.shapes;\nimport std.math { abs_int };\n'
                'main() { Point p: { x: 1, y: -2 }; print(abs_int(p.len())); }\n',
                encoding='utf-8',
            )
            out = root / 'build'
            result = run_cli('compile', str(root / 'app.brn'), '-I', str(root / 'src'), '-o', str(out), '--date', '2026-10-18')
            self.assertEqual(result.returncode, 0, msg=result.stderr)
            self.assertEqual(result.stdout, '')
            for relative in ('app.c', 'geo/shapes.c', 'geo/shapes.h', 'std/math.c', 'std/math.h'):
                self.assertTrue((out / relative).is_file(), msg=relative)
            app = (out / 'app.c').read_text(encoding='utf-8')
            self.assertIn("from module 'app'", app)
            self.assertIn('/* Build date: 2026-10-18 */', app)
            self.assertIn('#include "geo/shapes.h"', app)

    def test_missing_import_reports_link_error(self) -> None:
        result = run_cli('check', '--code', 'import nowhere.at_all;\nmain() {}')
        self.assertEqual(result.returncode, 1)
        self.assertIn('LNK003', result.stderr)

    def test_build_std(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            result = run_cli('build-std', '-o', tmp)
            self.assertEqual(result.returncode, 0, msg=result.stderr)
            for relative in ('std/math.c', 'std/math.h', 'std/geometry.c', 'std/geometry.h'):
                self.assertTrue((Path(tmp) / relative).is_file(), msg=relative)

    def test_verbose_logs_to_stderr_only(self) -> None:
        result = run_cli('--verbose', 'compile', '--code', 'main() { print(1); }')
        self.assertEqual(result.returncode, 0)
        self.assertIn('boron.linker', result.stderr)
        self.assertNotIn('DEBUG', result.stdout)


if __name__ == '__main__':
    unittest.main()
