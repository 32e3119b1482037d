from __future__ import annotations

import unittest

from boron.ast import FunctionDecl, MethodCall
from boron.errors import (
    ArityError,
    FieldMismatchError,
    MissingMainError,
    RecursiveStructError,
    RedefinitionError,
    TypeMismatchError,
    UnresolvedNameError,
)
from boron.lexer import Lexer
from boron.parser import Parser
from boron.resolver import LIBRARY, Resolver
from boron.symbols import BLN, FLT, INT, StructDef


POINT = 'struct Point { int x, int y, }\nlen(Point p) -> int { return p.x + p.y; }\n'


def resolve(source: str, *, mode: str = 'executable'):
    program = Parser(Lexer(source).tokenize()).parse_program()
    return Resolver('main', mode=mode).resolve(program)


def function_body(module, name: str):
    for item in module.program.items:
        if isinstance(item, FunctionDecl) and item.name == name:
            return item.body
    raise KeyError(name)


class ResolverScopeTests(unittest.TestCase):
    def test_let_inside_if_is_not_visible_after_the_block(self) -> None:
        source = 'main() { if true { let y: 1; } print(y); }'
        with self.assertRaises(UnresolvedNameError) as ctx:
            resolve(source)
        self.assertEqual(ctx.exception.name, 'y')
        self.assertEqual(ctx.exception.code, 'RES001')

    def test_let_inside_if_is_visible_in_nested_blocks(self) -> None:
        resolve('main() { if true { let y: 1; while y < 3 { y: y + 1; } } }')

    def test_bindings_are_declared_before_use(self) -> None:
        with self.assertRaises(UnresolvedNameError):
            resolve('main() { let a: b; let b: 1; }')

    def test_inner_block_may_shadow(self) -> None:
        module = resolve('main() { let x: 1; if true { let flt x: 2.5; print(x); } print(x); }')
        outer_print = function_body(module, 'main')[2].expr
        self.assertIs(module.type_of(outer_print.args[0]), INT)

    def test_redefinition_in_same_frame(self) -> None:
        with self.assertRaises(RedefinitionError) as ctx:
            resolve('main() { let x: 1; let x: 2; }')
        self.assertEqual(ctx.exception.code, 'RES005')

    def test_parameter_cannot_be_redeclared_in_body(self) -> None:
        with self.assertRaises(RedefinitionError):
            resolve('f(int a) { let a: 2; }\nmain() {}')

    def test_sibling_blocks_do_not_share_bindings(self) -> None:
        with self.assertRaises(UnresolvedNameError):
            resolve('main() { if true { let z: 1; } else { print(z); } }')

    def test_top_level_declarations_in_any_order(self) -> None:
        module = resolve('main() { print(later(Pair { a: 1 })); }\nlater(Pair p) -> int { return p.a; }\nstruct Pair { int a, }')
        self.assertIn('later', module.symbols.functions)

    def test_duplicate_top_level_names(self) -> None:
        for source in (
            'f() {}\nf() {}\nmain() {}',
            'struct A { int x, }\nA() {}\nmain() {}',
            'main() {}\nmain() {}',
            'print(int x) {}\nmain() {}',
        ):
            with self.subTest(source=source):
                with self.assertRaises(RedefinitionError):
                    resolve(source)


class ResolverStructTests(unittest.TestCase):
    def test_struct_init_is_reordered_to_declared_field_order(self) -> None:
        module = resolve(POINT + 'main() { Point p: { y: 2, x: 1 }; }')
        init = function_body(module, 'main')[0].value
        self.assertEqual([name for name, _ in module.struct_inits[id(init)]], ['x', 'y'])
        self.assertIsInstance(module.type_of(init), StructDef)

    def test_struct_init_field_errors(self) -> None:
        cases = {
            'missing': 'Point p: { x: 1 };',
            'unknown': 'Point p: { x: 1, y: 2, z: 3 };',
            'duplicate': 'Point p: { x: 1, x: 2, y: 3 };',
        }
        for label, stmt in cases.items():
            with self.subTest(case=label):
                with self.assertRaises(FieldMismatchError) as ctx:
                    resolve(POINT + f'main() {{ {stmt} }}')
                self.assertEqual(ctx.exception.code, 'RES002')
                self.assertEqual(ctx.exception.struct_name, 'Point')

    def test_unknown_field_access(self) -> None:
        with self.assertRaises(FieldMismatchError) as ctx:
            resolve(POINT + 'main() { Point p: { x: 1, y: 2 }; print(p.z); }')
        self.assertEqual(ctx.exception.field, 'z')

    def test_field_access_on_scalar(self) -> None:
        with self.assertRaises(FieldMismatchError):
            resolve('main() { let a: 1; print(a.x); }')

    def test_unknown_struct_and_type(self) -> None:
        with self.assertRaises(UnresolvedNameError):
            resolve('main() { Ghost g: { x: 1 }; }')
        with self.assertRaises(UnresolvedNameError):
            resolve('f(Ghost g) {}\nmain() {}')

    def test_recursive_struct(self) -> None:
        for source in (
            'struct Node { int v, Node next, }\nmain() {}',
            'struct A { B b, }\nstruct B { A a, }\nmain() {}',
        ):
            with self.subTest(source=source):
                with self.assertRaises(RecursiveStructError):
                    resolve(source)

    def test_struct_order_puts_contained_structs_first(self) -> None:
        module = resolve('struct Line { Point a, Point b, }\nstruct Point { int x, int y, }\nmain() {}')
        self.assertEqual([s.name for s in module.struct_order], ['Point', 'Line'])

    def test_methods_are_functions_taking_the_struct_first(self) -> None:
        module = resolve(POINT + 'main() {}')
        self.assertIn('len', module.symbols.structs['Point'].methods)


class ResolverCallTests(unittest.TestCase):
    def test_method_call_resolves_like_plain_call(self) -> None:
        module = resolve(POINT + 'main() { Point p: { x: 1, y: 2 }; print(p.len()); print(len(p)); }')
        body = function_body(module, 'main')
        method = body[1].expr.args[0]
        plain = body[2].expr.args[0]
        self.assertIsInstance(method, MethodCall)
        self.assertIs(module.target_of(method), module.target_of(plain))
        self.assertIs(module.type_of(method), INT)

    def test_arity_error(self) -> None:
        source = 'f(int a, int b, int c) -> int { return a; }\nmain() { print(f(1, 2)); }'
        with self.assertRaises(ArityError) as ctx:
            resolve(source)
        err = ctx.exception
        self.assertEqual((err.code, err.name, err.expected, err.found), ('RES003', 'f', 3, 2))

    def test_method_arity_counts_the_receiver(self) -> None:
        with self.assertRaises(ArityError) as ctx:
            resolve(POINT + 'main() { Point p: { x: 1, y: 2 }; print(p.len(3)); }')
        self.assertEqual((ctx.exception.expected, ctx.exception.found), (1, 2))

    def test_unknown_method(self) -> None:
        with self.assertRaises(UnresolvedNameError):
            resolve(POINT + 'main() { Point p: { x: 1, y: 2 }; p.area(); }')

    def test_method_requires_matching_receiver_type(self) -> None:
        source = POINT + 'struct Size { int w, }\nmain() { Size s: { w: 1 }; print(s.len()); }'
        with self.assertRaises(UnresolvedNameError):
            resolve(source)

    def test_unknown_function(self) -> None:
        with self.assertRaises(UnresolvedNameError):
            resolve('main() { nope(); }')

    def test_print_builtin(self) -> None:
        resolve("main() { print(1); print(2.5); print(true); print('c'); }")
        with self.assertRaises(ArityError):
            resolve('main() { print(1, 2); }')
        with self.assertRaises(TypeMismatchError):
            resolve(POINT + 'main() { Point p: { x: 1, y: 2 }; print(p); }')


class ResolverTypeTests(unittest.TestCase):
    def test_expression_types(self) -> None:
        module = resolve('main() { let a: 1 + 2; let b: 1 + 2.0; let c: a < b; let d: !a; let e: c ? 1 | 2; }')
        body = function_body(module, 'main')
        types = [module.decl_types[id(stmt)] for stmt in body]
        self.assertEqual(types, [INT, FLT, BLN, BLN, INT])

    def test_struct_where_scalar_expected(self) -> None:
        with self.assertRaises(TypeMismatchError) as ctx:
            resolve(POINT + 'main() { Point p: { x: 1, y: 2 }; let int n: p; }')
        self.assertEqual(ctx.exception.code, 'RES006')

    def test_argument_struct_mismatch(self) -> None:
        source = POINT + 'struct Size { int w, }\nmain() { Size s: { w: 1 }; print(len(s)); }'
        with self.assertRaises(TypeMismatchError):
            resolve(source)

    def test_return_checks(self) -> None:
        for source in (
            'f() -> int { return; }\nmain() {}',
            'f() { return 1; }\nmain() {}',
            POINT + 'f() -> Point { return 1; }\nmain() {}',
        ):
            with self.subTest(source=source):
                with self.assertRaises(TypeMismatchError):
                    resolve(source)

    def test_condition_must_be_scalar(self) -> None:
        with self.assertRaises(TypeMismatchError):
            resolve(POINT + 'main() { Point p: { x: 1, y: 2 }; if p { print(1); } }')

    def test_void_call_cannot_be_bound(self) -> None:
        with self.assertRaises(TypeMismatchError):
            resolve('f() {}\nmain() { let x: f(); }')

    def test_only_lvalues_can_be_assigned(self) -> None:
        with self.assertRaises(TypeMismatchError):
            resolve(POINT + 'mk() -> Point { return Point { x: 1, y: 2 }; }\nmain() { mk().x: 3; }')


class ResolverMainTests(unittest.TestCase):
    def test_missing_main_in_executable_mode(self) -> None:
        with self.assertRaises(MissingMainError) as ctx:
            resolve(POINT)
        self.assertEqual(ctx.exception.code, 'RES004')

    def test_body_errors_are_reported_before_missing_main(self) -> None:
        with self.assertRaises(UnresolvedNameError) as ctx:
            resolve('helper() { print(q); }')
        self.assertEqual(ctx.exception.name, 'q')

    def test_library_mode_does_not_need_main(self) -> None:
        module = resolve(POINT, mode=LIBRARY)
        self.assertTrue(module.importable)

    def test_library_mode_rejects_main(self) -> None:
        with self.assertRaises(RedefinitionError):
            resolve('main() {}', mode=LIBRARY)

    def test_main_may_return_int(self) -> None:
        module = resolve('main() -> int { return 3; }')
        self.assertIs(module.symbols.functions['main'].return_type, INT)


if __name__ == '__main__':
    unittest.main()
