"""Tests for tree-sitter parsing and the static config object extractor."""

import pytest

from testscout.parsing.config_object import (
    DIRNAME,
    UNRESOLVED,
    RegexLiteral,
    extract_config_object,
    substitute_dirname,
)
from testscout.parsing.treesitter import (
    GRAMMARS,
    error_lines,
    grammar_for,
    parse_config_source,
    parse_tree,
)

# ---------------------------------------------------------------------------
# treesitter.py: core wrapper
# ---------------------------------------------------------------------------


class TestGrammarFor:
    def test_javascript(self) -> None:
        assert grammar_for("jest.config.js") == "javascript"
        assert grammar_for("jest.config.mjs") == "javascript"
        assert grammar_for("jest.config.cjs") == "javascript"

    def test_typescript(self) -> None:
        assert grammar_for("vitest.config.ts") == "typescript"
        assert grammar_for("vitest.config.mts") == "typescript"
        assert grammar_for("vitest.config.cts") == "typescript"

    def test_tsx(self) -> None:
        assert grammar_for("component.tsx") == "tsx"

    def test_unknown(self) -> None:
        assert grammar_for("deno.json") is None
        assert grammar_for("Makefile") is None

    def test_case_insensitive(self) -> None:
        assert grammar_for("JEST.CONFIG.TS") == "typescript"

    def test_grammar_names(self) -> None:
        assert set(GRAMMARS) == {"javascript", "typescript", "tsx"}


class TestParseConfigSource:
    def test_program_root(self) -> None:
        root = parse_config_source("module.exports = {};", "jest.config.js")
        assert root is not None
        assert root.type == "program"

    def test_typescript_syntax(self) -> None:
        root = parse_config_source("export default { a: 1 } as const;", "vite.config.ts")
        assert root is not None

    def test_unknown_suffix_read_as_typescript(self) -> None:
        assert parse_config_source("export default {};", "config") is not None

    def test_syntax_error_yields_none(self) -> None:
        assert parse_config_source("module.exports = {", "jest.config.js") is None

    def test_error_lines(self) -> None:
        tree = parse_tree(b"const a = 1;\nmodule.exports = {", "javascript")
        lines = error_lines(tree.root_node)
        assert lines
        assert all(line >= 1 for line in lines)

    def test_same_source_reuses_tree(self) -> None:
        first = parse_tree(b"export default {};", "typescript")
        assert parse_tree(b"export default {};", "typescript") is first

    def test_unsupported_grammar(self) -> None:
        with pytest.raises(ValueError, match="Unsupported language"):
            parse_tree(b"code", "cobol")


# ---------------------------------------------------------------------------
# config_object.py: export location
# ---------------------------------------------------------------------------


class TestExportLocation:
    def test_module_exports(self) -> None:
        source = "module.exports = { testMatch: ['**/*.unit.js'] };"
        assert extract_config_object(source, "jest.config.js") == {"testMatch": ["**/*.unit.js"]}

    def test_exports_default(self) -> None:
        source = "exports.default = { testRegex: 'spec' };"
        assert extract_config_object(source, "jest.config.js") == {"testRegex": "spec"}

    def test_export_default_object(self) -> None:
        source = "export default { testDir: './e2e' };"
        assert extract_config_object(source, "playwright.config.ts") == {"testDir": "./e2e"}

    def test_default_export_preferred_over_module_exports(self) -> None:
        source = "module.exports = { a: 1 };\nexport default { b: 2 };"
        assert extract_config_object(source, "config.ts") == {"b": 2}

    def test_export_default_identifier(self) -> None:
        source = """\
const config = {
  roots: ['<rootDir>/src'],
};
export default config;
"""
        assert extract_config_object(source, "jest.config.ts") == {"roots": ["<rootDir>/src"]}

    def test_exported_const_binding(self) -> None:
        source = """\
export const shared = { include: ['src/**/*.test.ts'] };
export default { test: shared };
"""
        result = extract_config_object(source, "vitest.config.ts")
        assert result == {"test": {"include": ["src/**/*.test.ts"]}}

    def test_no_export_is_unresolved(self) -> None:
        assert extract_config_object("const config = { a: 1 };", "config.js") is UNRESOLVED

    def test_syntax_error_is_unresolved(self) -> None:
        assert extract_config_object("module.exports = { testMatch: [", "config.js") is UNRESOLVED

    def test_export_of_non_object_is_unresolved(self) -> None:
        assert extract_config_object("export default 'nope';", "config.ts") is UNRESOLVED


# ---------------------------------------------------------------------------
# config_object.py: value folding
# ---------------------------------------------------------------------------


class TestBuilders:
    def test_define_config_call(self) -> None:
        source = """\
import { defineConfig } from 'vitest/config';

export default defineConfig({
  test: {
    include: ['src/**/*.test.ts'],
    exclude: ['**/node_modules/**'],
  },
});
"""
        result = extract_config_object(source, "vitest.config.ts")
        assert result == {
            "test": {"include": ["src/**/*.test.ts"], "exclude": ["**/node_modules/**"]}
        }

    def test_arrow_function_builder(self) -> None:
        source = "export default defineConfig(() => ({ test: { dir: 'tests' } }));"
        assert extract_config_object(source, "vitest.config.ts") == {"test": {"dir": "tests"}}

    def test_function_with_single_return(self) -> None:
        source = """\
export default defineConfig(function () {
  const unused = 1;
  return { root: 'packages/web' };
});
"""
        assert extract_config_object(source, "vite.config.ts") == {"root": "packages/web"}

    def test_function_with_two_returns_is_unresolved(self) -> None:
        source = """\
export default defineConfig(({ mode }) => {
  if (mode === 'ci') {
    return { root: 'a' };
  }
  return { root: 'b' };
});
"""
        assert extract_config_object(source, "vite.config.ts") is UNRESOLVED

    def test_builder_arguments_are_merged(self) -> None:
        source = "export default mergeConfig({ root: 'a', x: 1 }, { root: 'b' });"
        assert extract_config_object(source, "vitest.config.ts") == {"root": "b", "x": 1}


class TestValues:
    def test_literals(self) -> None:
        source = "module.exports = { s: 'str', n: 42, f: 1.5, t: true, no: false, z: null };"
        assert extract_config_object(source, "c.js") == {
            "s": "str",
            "n": 42,
            "f": 1.5,
            "t": True,
            "no": False,
            "z": None,
        }

    def test_string_escapes(self) -> None:
        source = r"module.exports = { testRegex: '\\.spec\\.ts$' };"
        assert extract_config_object(source, "c.js") == {"testRegex": r"\.spec\.ts$"}

    def test_template_literal_with_binding(self) -> None:
        source = "const dir = 'src';\nexport default { testMatch: [`${dir}/**/*.test.ts`] };"
        assert extract_config_object(source, "c.ts") == {"testMatch": ["src/**/*.test.ts"]}

    def test_template_literal_with_unresolved_interpolation(self) -> None:
        source = "export default { rootDir: `${process.cwd()}/src`, keep: 'yes' };"
        assert extract_config_object(source, "c.ts") == {"keep": "yes"}

    def test_string_concatenation(self) -> None:
        source = "const base = 'packages';\nmodule.exports = { rootDir: base + '/api' };"
        assert extract_config_object(source, "c.js") == {"rootDir": "packages/api"}

    def test_dirname_sentinel(self) -> None:
        source = "module.exports = { rootDir: __dirname };"
        assert extract_config_object(source, "c.js") == {"rootDir": DIRNAME}

    def test_regex_literal(self) -> None:
        source = r"export default { testMatch: /.*\.e2e\.ts$/i };"
        assert extract_config_object(source, "playwright.config.ts") == {
            "testMatch": RegexLiteral(r".*\.e2e\.ts$", "i")
        }

    def test_shorthand_property(self) -> None:
        source = "const test = { include: ['a.test.ts'] };\nexport default { test };"
        assert extract_config_object(source, "c.ts") == {"test": {"include": ["a.test.ts"]}}

    def test_object_spread_last_write_wins(self) -> None:
        source = """\
const base = { testMatch: ['a'], roots: ['src'] };
module.exports = { ...base, testMatch: ['b'] };
"""
        assert extract_config_object(source, "c.js") == {"testMatch": ["b"], "roots": ["src"]}

    def test_array_spread(self) -> None:
        source = "const common = ['a'];\nexport default { include: [...common, 'b'] };"
        assert extract_config_object(source, "c.ts") == {"include": ["a", "b"]}

    def test_member_access_on_binding(self) -> None:
        source = "const shared = { test: { dir: 'e2e' } };\nexport default { test: shared.test };"
        assert extract_config_object(source, "c.ts") == {"test": {"dir": "e2e"}}

    def test_type_wrappers_are_transparent(self) -> None:
        source = """\
const config = { testDir: 'e2e' } satisfies PlaywrightTestConfig;
export default (config as PlaywrightTestConfig);
"""
        assert extract_config_object(source, "playwright.config.ts") == {"testDir": "e2e"}


class TestUnresolvedPropagation:
    def test_unresolved_property_is_dropped(self) -> None:
        source = "module.exports = { testMatch: process.env.CI ? ['a'] : ['b'], rootDir: 'src' };"
        assert extract_config_object(source, "c.js") == {"rootDir": "src"}

    def test_unresolved_element_drops_whole_array(self) -> None:
        source = "module.exports = { testMatch: ['a', getPattern()], roots: ['src'] };"
        assert extract_config_object(source, "c.js") == {"roots": ["src"]}

    def test_binding_cycle_does_not_recurse_forever(self) -> None:
        source = "const a = b;\nconst b = a;\nmodule.exports = { x: a, y: 1 };"
        assert extract_config_object(source, "c.js") == {"y": 1}

    def test_unresolved_is_falsy_singleton(self) -> None:
        assert not UNRESOLVED
        assert repr(UNRESOLVED) == "UNRESOLVED"


class TestSubstituteDirname:
    def test_replaces_nested_values(self) -> None:
        value = {"rootDir": DIRNAME, "roots": [DIRNAME + "/src"], "other": "keep"}
        assert substitute_dirname(value, "/ws/app") == {
            "rootDir": "/ws/app",
            "roots": ["/ws/app/src"],
            "other": "keep",
        }
