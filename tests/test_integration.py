from __future__ import annotations

import json
import tempfile
import threading
import unittest
from datetime import date
from pathlib import Path

import boron
from boron.errors import CLIError, CompilerError, format_diagnostic
from boron.linker import MappingLocator
from boron.main import CompileOptions
from boron.scaffolder import write_files
from boron.tokens import TokenType


PROGRAM = '''
import std.geometry { Vec2, vec2, dot };

struct Body { Vec2 pos, flt mass, }

energy(Body b) -> flt { return b.mass * b.pos.dot(b.pos); }

main() {
    Body b: { pos: vec2(1., 2.), mass: 3. };
    print(b.energy());
}
'''


class IntegrationTests(unittest.TestCase):
    def test_package_level_api(self) -> None:
        artifacts = boron.compile_source(PROGRAM)
        self.assertIsInstance(artifacts, boron.CompileArtifacts)
        self.assertEqual([m.name for m in artifacts.modules], ['std.geometry', 'main'])
        self.assertIn('float energy(Body *b) {', artifacts.code)
        self.assertIn('return (b->mass * std_geometry__dot(&b->pos, &b->pos));', artifacts.code)
        self.assertIn('    Body b = (Body){ .pos = (std_geometry__vec2(1.0f, 2.0f, &_brn_t1), _brn_t1), .mass = 3.0f };', artifacts.code)
        self.assertIsNone(artifacts.header)

    def test_check_and_tokenize(self) -> None:
        linked = boron.check_source(PROGRAM)
        self.assertEqual(linked.entry, 'main')
        tokens = boron.tokenize_source('main() {}')
        self.assertEqual(tokens[0].token_type, TokenType.MAIN)
        self.assertEqual(tokens[-1].token_type, TokenType.EOF)

    def test_explain_is_json_serializable(self) -> None:
        payload = boron.explain_source(PROGRAM)
        encoded = json.dumps(payload)
        self.assertIn('"node_type": "StructDecl"', encoded)
        self.assertEqual(payload['modules'], ['std.geometry', 'main'])
        self.assertEqual(payload['imports'], {'main': ['std.geometry'], 'std.geometry': []})
        self.assertEqual(payload['symbols']['imports'], ['Vec2', 'dot', 'vec2'])

    def test_compile_file_uses_stem_as_module_name(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / 'hello.brn'
            path.write_text('main() { print(1); }\n', encoding='utf-8')
            artifacts = boron.compile_file(path)
            self.assertEqual(list(artifacts.files), ['hello.c'])

    def test_compile_library_resolves_each_module(self) -> None:
        modules = {
            'base': 'struct Id { int v, }',
            'util': 'import base;\nget(Id i) -> int { return i.v; }',
        }
        files = boron.compile_library(['util', 'base'], locator=MappingLocator(modules), options=CompileOptions(build_date=date(2026, 1, 2)))
        self.assertEqual(sorted(files), ['base.c', 'base.h', 'util.c', 'util.h'])
        self.assertIn('Build date: 2026-01-02', files['util.h'])

    def test_diagnostic_serialization(self) -> None:
        with self.assertRaises(CompilerError) as ctx:
            boron.compile_source('main() { print(missing); }', options=CompileOptions(filename='demo.brn'))
        diag = ctx.exception.to_diagnostic()
        payload = diag.to_dict()
        self.assertEqual(payload['code'], 'RES001')
        self.assertEqual(payload['span']['file'], 'demo.brn')
        self.assertEqual(payload['context'], {'name': 'missing'})
        self.assertTrue(format_diagnostic(diag).startswith('RES001 demo.brn:1:16: '))

    def test_non_ascii_digit_is_a_compiler_error(self) -> None:
        with self.assertRaises(CompilerError) as ctx:
            boron.compile_source('main() { print(²); }')
        self.assertEqual(ctx.exception.code, 'LEX001')

    def test_failed_compilation_produces_no_output(self) -> None:
        modules = {'ok': 'f() {}', 'bad': 'g( {}'}
        with self.assertRaises(CompilerError):
            boron.compile_source('import ok;\nimport bad;\nmain() {}', locator=MappingLocator(modules))

    def test_write_files_rejects_file_target(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / 'out.c'
            target.write_text('', encoding='utf-8')
            with self.assertRaises(CLIError):
                write_files({'main.c': ''}, target)

    def test_parallel_compilations_are_independent(self) -> None:
        expected = boron.compile_source(PROGRAM).files
        results: list[dict[str, str]] = []
        lock = threading.Lock()

        def worker() -> None:
            files = boron.compile_source(PROGRAM).files
            with lock:
                results.append(files)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(results, [expected] * 4)


if __name__ == '__main__':
    unittest.main()
