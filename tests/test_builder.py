"""Tests for finding unused exports across a project."""

import itertools
import os
import pytest
from pathlib import Path

from exportscan.builder import find_unused_exports, eliminate_unused_exports, scan_modules
from exportscan.errors import ConfigurationError, ModuleReadError, ModuleScanError
from exportscan.parser import scan_module_code
from exportscan.resolver import SpecifierResolver
from usage.model import Binding, ScannedModule, UnusedExports


DEFAULT = Binding.DEFAULT
NAMESPACE = Binding.NAMESPACE


def _project(root: Path, files: dict) -> str:
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return str(root)


class TestFindUnusedExports:
    """Tests for find_unused_exports on small projects."""

    def test_files_without_exports_or_imports(self, tmp_path):
        """Test files with no exports or imports."""
        cwd = _project(tmp_path, {"a.mjs": "const a = 1;", "b.js": ""})

        assert find_unused_exports(cwd=cwd) == {}

    def test_multiple_files_importing_same_file(self, tmp_path):
        """Test several modules importing different exports of one module."""
        cwd = _project(tmp_path, {
            "a.mjs": "export const a = 1;\nexport const b = 2;\nexport default 3;",
            "b.mjs": "import { a } from './a.mjs';",
            "c.mjs": "import x, { b } from './a.mjs';",
        })

        assert find_unused_exports(cwd=cwd) == {}

    def test_some_unused_exports(self, tmp_path):
        """Test a project where nothing is imported."""
        cwd = _project(tmp_path, {
            "a.mjs": "export default 1;\nexport const a = 2;",
            "b.mjs": "export const b = 1;",
        })

        assert find_unused_exports(cwd=cwd) == {
            os.path.join(cwd, "a.mjs"): {DEFAULT, "a"},
            os.path.join(cwd, "b.mjs"): {"b"},
        }

    def test_named_import_leaves_default(self, tmp_path):
        """Test that importing one name leaves the default export unused."""
        cwd = _project(tmp_path, {
            "a.mjs": "export default 1;\nexport const a = 2;",
            "b.mjs": "import { a } from './a.mjs';",
        })

        assert find_unused_exports(cwd=cwd) == {os.path.join(cwd, "a.mjs"): {DEFAULT}}

    def test_namespace_import_and_default_import(self, tmp_path):
        """Test that a namespace and default import use every export."""
        cwd = _project(tmp_path, {
            "a.mjs": "export default 1;\nexport const a = 2;",
            "b.mjs": "import d, * as ns from './a.mjs';",
        })

        assert find_unused_exports(cwd=cwd) == {}

    def test_namespace_import_without_default_import(self, tmp_path):
        """Test that a namespace import leaves the default export unused."""
        cwd = _project(tmp_path, {
            "a.mjs": "export default 1;\nexport const a = 2;",
            "b.mjs": "import * as ns from './a.mjs';",
        })

        assert find_unused_exports(cwd=cwd) == {os.path.join(cwd, "a.mjs"): {DEFAULT}}

    def test_bare_import_specifier(self, tmp_path):
        """Test that bare specifiers are skipped."""
        cwd = _project(tmp_path, {
            "a.mjs": "import fs from 'node:fs';\nimport React from 'react';",
        })

        assert find_unused_exports(cwd=cwd) == {}

    def test_unresolvable_import_specifier(self, tmp_path):
        """Test that unresolvable specifiers are skipped."""
        cwd = _project(tmp_path, {
            "a.mjs": "import { a } from './missing.mjs';",
        })

        assert find_unused_exports(cwd=cwd) == {}

    def test_unresolvable_keeps_exports_unused(self, tmp_path):
        """Test that an import that doesn't resolve doesn't use any export."""
        cwd = _project(tmp_path, {
            "a.mjs": "export const a = 1;",
            "b.mjs": "import { a } from './a';",
        })

        assert find_unused_exports(cwd=cwd) == {os.path.join(cwd, "a.mjs"): {"a"}}

    def test_gitignore(self, tmp_path):
        """Test that modules ignored by .gitignore aren't scanned."""
        cwd = _project(tmp_path, {
            ".gitignore": "ignored.mjs\n",
            "ignored.mjs": "export const a = 1;",
        })

        assert find_unused_exports(cwd=cwd) == {}

    def test_ignore_unused_exports_comments(self, tmp_path):
        """Test ignore unused exports comments."""
        cwd = _project(tmp_path, {
            "a.mjs": "// ignore unused exports\nexport const a = 1;\nexport default 2;",
            "b.mjs": "// ignore unused exports b\nexport const a = 1;\nexport const b = 2;",
            "c.mjs": "// ignore unused exports a\nexport const a = 1;\nexport default 2;",
        })

        assert find_unused_exports(cwd=cwd) == {
            os.path.join(cwd, "b.mjs"): {"a"},
            os.path.join(cwd, "c.mjs"): {DEFAULT},
        }

    def test_module_glob(self, tmp_path):
        """Test option module_glob."""
        cwd = _project(tmp_path, {
            "a.txt": "export default 1;",
            "b.mjs": "export const b = 1;",
        })

        assert find_unused_exports(cwd=cwd, module_glob="**/*.txt") == {
            os.path.join(cwd, "a.txt"): {DEFAULT},
        }

    def test_resolve_file_extensions(self, tmp_path):
        """Test option resolve_file_extensions."""
        cwd = _project(tmp_path, {
            "a.mjs": "import b from './b';",
            "b.mjs": "export default 1;",
            "b.a.mjs": "export default 1;",
        })

        assert find_unused_exports(cwd=cwd, resolve_file_extensions=["mjs", "a.mjs"]) == {
            os.path.join(cwd, "b.a.mjs"): {DEFAULT},
        }

    def test_resolve_index_files(self, tmp_path):
        """Test options resolve_file_extensions and resolve_index_files."""
        cwd = _project(tmp_path, {
            "a.mjs": "import b from './b';",
            "b/index.mjs": "export default 1;",
            "b/index.a.mjs": "export default 1;",
        })

        assert find_unused_exports(
            cwd=cwd,
            resolve_file_extensions=["mjs", "a.mjs"],
            resolve_index_files=True,
        ) == {
            os.path.join(cwd, "b", "index.a.mjs"): {DEFAULT},
        }

    def test_aliases(self, tmp_path):
        """Test that aliased imports resolve like relative imports."""
        files = {
            "lib/x.mjs": "export const x = 1;\nexport const y = 2;",
            "src/a.mjs": "import { x } from '@root/lib/x.mjs';",
        }
        aliased = _project(tmp_path / "aliased", files)
        relative = _project(tmp_path / "relative", {
            **files,
            "src/a.mjs": "import { x } from '../lib/x.mjs';",
        })

        aliased_result = find_unused_exports(cwd=aliased, aliases={"@root": "."})
        relative_result = find_unused_exports(cwd=relative)

        assert aliased_result == {os.path.join(aliased, "lib", "x.mjs"): {"y"}}
        assert relative_result == {os.path.join(relative, "lib", "x.mjs"): {"y"}}

    def test_aliases_as_pairs(self, tmp_path):
        """Test aliases given as ordered (prefix, target) pairs."""
        cwd = _project(tmp_path, {
            "src/x.mjs": "export const x = 1;",
            "a.mjs": "import { x } from '~/x.mjs';",
        })

        assert find_unused_exports(cwd=cwd, aliases=[("~", "src")]) == {}

    def test_reexports(self, tmp_path):
        """Test that re-exports use the re-exported module's exports."""
        cwd = _project(tmp_path, {
            "a.mjs": "export const a = 1;\nexport default 2;",
            "b.mjs": "export { a } from './a.mjs';",
            "c.mjs": "import { a } from './b.mjs';",
        })

        assert find_unused_exports(cwd=cwd) == {os.path.join(cwd, "a.mjs"): {DEFAULT}}

    def test_default_cwd(self, tmp_path, monkeypatch):
        """Test that cwd defaults to the current working directory."""
        _project(tmp_path, {"a.mjs": "export const a = 1;"})
        monkeypatch.chdir(tmp_path)

        assert find_unused_exports() == {os.path.join(os.getcwd(), "a.mjs"): {"a"}}

    def test_max_workers(self, tmp_path):
        """Test scanning on a single worker thread."""
        cwd = _project(tmp_path, {
            "a.mjs": "export const a = 1;",
            "b.mjs": "import { a } from './a.mjs';\nexport const b = 1;",
        })

        assert find_unused_exports(cwd=cwd, max_workers=1) == {
            os.path.join(cwd, "b.mjs"): {"b"},
        }

    def test_unreadable_module(self, tmp_path):
        """Test that a module that can't be decoded aborts the run."""
        cwd = _project(tmp_path, {
            "a.mjs": "export const a = 1;",
            "b.mjs": b"\xff\xfe\xfa",
        })

        with pytest.raises(ModuleReadError, match="b.mjs"):
            find_unused_exports(cwd=cwd)

    def test_regex_after_block(self, tmp_path):
        """Test a regular expression with a quote in statement position."""
        cwd = _project(tmp_path, {
            "a.mjs": "function f() {}\n/'/.test(x);\nexport const a = 1;",
        })

        assert find_unused_exports(cwd=cwd) == {os.path.join(cwd, "a.mjs"): {"a"}}

    def test_jsx_apostrophe(self, tmp_path):
        """Test that an apostrophe in JSX text doesn't stop the scan."""
        cwd = _project(tmp_path, {
            "a.js": "export const A = () => <p>Don't</p>;\nexport const B = 1;",
        })

        assert find_unused_exports(cwd=cwd) == {os.path.join(cwd, "a.js"): {"A", "B"}}

    def test_empty_module_glob(self, tmp_path):
        """Test that an empty module glob finds no modules."""
        cwd = _project(tmp_path, {"a.mjs": "export const a = 1;"})

        assert find_unused_exports(cwd=cwd, module_glob="") == {}

    def test_unscannable_module(self, tmp_path):
        """Test that a module that can't be tokenized aborts the run."""
        cwd = _project(tmp_path, {"a.mjs": "/* never closed"})

        with pytest.raises(ModuleScanError):
            find_unused_exports(cwd=cwd)


class TestOptionValidation:
    """Tests for option validation."""

    def test_cwd_not_a_string(self):
        """Test option cwd not a string."""
        with pytest.raises(ConfigurationError, match="Option `cwd` must be a string."):
            find_unused_exports(cwd=True)

    def test_cwd_inaccessible(self, tmp_path):
        """Test option cwd an inaccessible directory path."""
        with pytest.raises(ConfigurationError, match="must be an accessible directory path"):
            find_unused_exports(cwd=str(tmp_path / "nonexistent"))

    def test_cwd_path_object(self, tmp_path):
        """Test option cwd as a Path."""
        assert find_unused_exports(cwd=tmp_path) == {}

    def test_module_glob_not_a_string(self):
        """Test option module_glob not a string."""
        with pytest.raises(ConfigurationError, match="Option `module_glob` must be a string."):
            find_unused_exports(module_glob=True)

    def test_module_glob_absolute(self, tmp_path):
        """Test option module_glob an absolute pattern."""
        with pytest.raises(ConfigurationError, match="must be a relative glob pattern"):
            find_unused_exports(cwd=tmp_path, module_glob=str(tmp_path / "*.mjs"))

    @pytest.mark.parametrize("extensions", [True, [], ["a", True, "b"]])
    def test_resolve_file_extensions_invalid(self, extensions):
        """Test option resolve_file_extensions not a non-empty list of strings."""
        with pytest.raises(ConfigurationError, match="must be a list of strings"):
            find_unused_exports(resolve_file_extensions=extensions)

    def test_resolve_index_files_not_a_boolean(self):
        """Test option resolve_index_files not a boolean."""
        with pytest.raises(ConfigurationError, match="must be a boolean"):
            find_unused_exports(resolve_file_extensions=["js"], resolve_index_files="")

    def test_resolve_index_files_without_extensions(self, tmp_path):
        """Test that resolve_index_files requires extensions, before reading modules."""
        cwd = _project(tmp_path, {"a.mjs": b"\xff\xfe\xfa"})

        with pytest.raises(ConfigurationError, match="can only be `True`"):
            find_unused_exports(cwd=cwd, resolve_index_files=True)

    @pytest.mark.parametrize("aliases", ["@root=.", [("@root",)], {"@root": 1}])
    def test_aliases_invalid(self, aliases):
        """Test option aliases not a mapping of strings."""
        with pytest.raises(ConfigurationError, match="Option `aliases`"):
            find_unused_exports(aliases=aliases)

    @pytest.mark.parametrize("max_workers", [0, True, 1.5])
    def test_max_workers_invalid(self, max_workers):
        """Test option max_workers not a positive integer."""
        with pytest.raises(ConfigurationError, match="Option `max_workers`"):
            find_unused_exports(max_workers=max_workers)

    def test_configuration_error_is_type_error(self):
        """Test that configuration errors are also TypeErrors."""
        with pytest.raises(TypeError):
            find_unused_exports(module_glob=1)


class TestElimination:
    """Tests for eliminating exports from scan results."""

    def test_edge_order_independence(self):
        """Test that import edges give the same result in any order."""
        exports = {
            "/p/a.mjs": {DEFAULT, "a", "b"},
            "/p/b.mjs": {"x", "y"},
            "/p/c.mjs": {DEFAULT, "c"},
        }
        edges = [
            ("/p/a.mjs", {NAMESPACE}),
            ("/p/a.mjs", {"a"}),
            ("/p/b.mjs", {"x"}),
            ("/p/c.mjs", {NAMESPACE, DEFAULT}),
            ("/p/c.mjs", {"c"}),
        ]

        results = []
        for order in itertools.permutations(edges):
            unused = UnusedExports.from_modules(
                ScannedModule(path=path, exports=frozenset(names))
                for path, names in exports.items()
            )
            for path, names in order:
                unused.eliminate(path, names)
            results.append(unused.as_dict())

        assert len(results) == 120
        assert all(result == results[0] for result in results)
        assert results[0] == {"/p/a.mjs": {DEFAULT}, "/p/b.mjs": {"y"}}

    def test_resolves_against_scanned_modules(self):
        """Test that a fully used module still stops extension fallback."""
        modules = [
            scan_module_code("export default 1;", "/p/b.mjs"),
            scan_module_code("export default 1;", "/p/b.a.mjs"),
            scan_module_code("import b from './b';", "/p/a.mjs"),
            scan_module_code("import b from './b';", "/p/c.mjs"),
        ]
        resolver = SpecifierResolver("/p", extensions=["mjs", "a.mjs"])

        unused = eliminate_unused_exports({m.path: m for m in modules}, resolver)

        assert unused.as_dict() == {"/p/b.a.mjs": {DEFAULT}}

    def test_scan_modules(self, tmp_path):
        """Test scanning module files into a map keyed by path."""
        cwd = _project(tmp_path, {"a.mjs": "export const a = 1;"})
        path = os.path.join(cwd, "a.mjs")

        modules = scan_modules([path])

        assert list(modules) == [path]
        assert modules[path].exports == {"a"}
