"""Scanner for extracting exports and imports from ECMAScript module source."""

import re
from typing import Dict, List, NamedTuple, Optional, Set, Tuple

from usage.model import Binding, Name, ScannedModule
from .errors import ModuleScanError


class Token(NamedTuple):
    typ: str
    value: str
    start: int
    newline_before: bool = False


# Comment marking exports that are intentionally unused, e.g.
# `// ignore unused exports` or `/* ignore unused exports a, default */`
IGNORE_COMMENT_PATTERN = re.compile(r"^ignore unused exports(?:\s+(.*))?$", re.DOTALL)

# Keywords after which a `/` starts a regular expression rather than a division
KEYWORDS_BEFORE_EXPRESSION = {
    "await", "case", "delete", "do", "else", "in", "instanceof",
    "new", "of", "return", "throw", "typeof", "void", "yield",
}

# Keywords whose parenthesized head is followed by a statement
CONTROL_KEYWORDS = {"for", "if", "while", "with"}

LINE_TERMINATORS = "\n\r\u2028\u2029"
DIGITS = "0123456789"

_NAME = re.compile(r"[A-Za-z_$\u0080-\uffff][\w$\u0080-\uffff\u200c\u200d]*")
_NUMBER = re.compile(
    r"(?:0[xXoObB][0-9a-fA-F_]+|(?:\d[\d_]*\.?[\d_]*|\.\d[\d_]*)(?:[eE][+-]?\d[\d_]*)?)n?"
)
_PUNCTUATOR = re.compile(
    r"\.\.\.|\?\?=?|\?\.(?!\d)|=>|[=!]==?|\*\*=?|&&=?|\|\|=?|<<=?|>>>?=?"
    r"|[-+*%&|^<>]=|\+\+|--|[{}()\[\];,.<>+\-*%&|^!~?:=@#]"
)
_ESCAPE = re.compile(r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|.)", re.DOTALL)
_SIMPLE_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}


def scan_module_code(code: str, path: str = "") -> ScannedModule:
    """
    Scan module source for its exports and imports.

    Args:
        code: The module source text.
        path: Absolute path of the module, used for the result and in errors.

    Returns:
        ScannedModule with the export names (minus any listed in ignore
        comments) and a map of import specifiers to imported names.

    Raises:
        ModuleScanError: If a block comment or template literal is unterminated.
    """
    tokens, comments = scan_tokens(code, path)
    parser = _DeclarationParser(tokens)
    parser.parse()

    exports = parser.exports
    ignore_all, ignored = _ignored_exports(comments)
    if ignore_all:
        exports = set()
    else:
        exports -= ignored

    return ScannedModule(
        path=path,
        exports=frozenset(exports),
        imports={specifier: frozenset(names) for specifier, names in parser.imports.items()},
    )


def _ignored_exports(comments: List[str]) -> Tuple[bool, Set[Name]]:
    """Collect the export names excluded by ignore comments."""
    ignored: Set[Name] = set()
    for comment in comments:
        match = IGNORE_COMMENT_PATTERN.match(comment.strip())
        if not match:
            continue
        if not match.group(1):
            return True, ignored
        for name in match.group(1).split(","):
            name = name.strip()
            if name:
                ignored.add(_binding_name(name))
    return False, ignored


def _binding_name(name: str) -> Name:
    return Binding.DEFAULT if name == "default" else name


def scan_tokens(code: str, path: str = "") -> Tuple[List[Token], List[str]]:
    """
    Split module source into tokens, collecting comment text separately.

    Template literal substitutions are tokenized as code, so imports inside
    them are still seen. A `/` is read as a regular expression literal when
    the previous token can't end an expression.

    Args:
        code: The module source text.
        path: Module path for error messages.

    Returns:
        Tuple of (tokens, comment texts).
    """
    tokens: List[Token] = []
    comments: List[str] = []
    # "block", "object" or "template" (substitution) per open brace
    braces: List[str] = []
    # Whether each open paren is the head of a control statement
    parens: List[bool] = []
    # Indices of `)` and `}` tokens after which a statement can start
    statement_ends: Set[int] = set()
    newline = False
    i = 0
    n = len(code)

    if code.startswith("#!"):
        i = _line_end(code, 0)

    while i < n:
        ch = code[i]

        if ch in LINE_TERMINATORS:
            newline = True
            i += 1
            continue
        if ch.isspace() or ch == "\ufeff":
            i += 1
            continue

        start = i
        if code.startswith("//", i):
            end = _line_end(code, i)
            comments.append(code[i + 2:end])
            i = end
            continue
        if code.startswith("/*", i):
            end = code.find("*/", i + 2)
            if end == -1:
                raise ModuleScanError("Unterminated comment", i, path)
            text = code[i + 2:end]
            if any(terminator in text for terminator in LINE_TERMINATORS):
                newline = True
            comments.append(text)
            i = end + 2
            continue

        if ch in "'\"":
            string = _read_string(code, i)
            if string is None:
                # Stray quote, e.g. an apostrophe in JSX text
                tokens.append(Token("punct", ch, start, newline))
                i += 1
            else:
                value, i = string
                tokens.append(Token("string", value, start, newline))
        elif ch == "`":
            value, i, substitution = _read_template(code, i + 1, path)
            if substitution:
                braces.append("template")
            tokens.append(Token("template", value, start, newline))
        elif ch == "}" and braces and braces[-1] == "template":
            braces.pop()
            value, i, substitution = _read_template(code, i + 1, path)
            if substitution:
                braces.append("template")
            tokens.append(Token("template", value, start, newline))
        elif ch == "/":
            regex_end = _regex_end(code, i) if _regex_allowed(tokens, statement_ends) else None
            if regex_end is not None:
                tokens.append(Token("regex", code[i:regex_end], start, newline))
                i = regex_end
            else:
                value = "/=" if code.startswith("/=", i) else "/"
                tokens.append(Token("punct", value, start, newline))
                i += len(value)
        elif ch in DIGITS or (ch == "." and i + 1 < n and code[i + 1] in DIGITS):
            match = _NUMBER.match(code, i)
            tokens.append(Token("number", match.group(), start, newline))
            i = match.end()
        else:
            match = _NAME.match(code, i)
            if match:
                tokens.append(Token("name", match.group(), start, newline))
                i = match.end()
            else:
                match = _PUNCTUATOR.match(code, i)
                value = match.group() if match else ch
                if value == "{":
                    braces.append(_brace_kind(tokens))
                elif value == "}" and braces:
                    if braces.pop() == "block":
                        statement_ends.add(len(tokens))
                elif value == "(":
                    parens.append(
                        bool(tokens) and tokens[-1].typ == "name"
                        and tokens[-1].value in CONTROL_KEYWORDS
                    )
                elif value == ")" and parens:
                    if parens.pop():
                        statement_ends.add(len(tokens))
                tokens.append(Token("punct", value, start, newline))
                i += len(value)

        newline = False

    return tokens, comments


def _line_end(code: str, i: int) -> int:
    """Return the index of the next line terminator (or the end of code)."""
    while i < len(code) and code[i] not in LINE_TERMINATORS:
        i += 1
    return i


def _read_string(code: str, i: int) -> Optional[Tuple[str, int]]:
    """
    Read a quoted string literal starting at ``i``, returning (value, end).

    Returns None if the line ends before the closing quote.
    """
    quote = code[i]
    j = i + 1
    while j < len(code):
        ch = code[j]
        if ch == "\\":
            j += 3 if code.startswith("\r\n", j + 1) else 2
            continue
        if ch == quote:
            return _unescape(code[i + 1:j]), j + 1
        if ch in "\n\r":
            return None
        j += 1
    return None


def _read_template(code: str, i: int, path: str) -> Tuple[str, int, bool]:
    """
    Read template literal text from ``i`` up to a closing backtick or ``${``.

    Returns:
        Tuple of (raw text, end index, whether a substitution was opened).
    """
    j = i
    while j < len(code):
        ch = code[j]
        if ch == "\\":
            j += 2
            continue
        if ch == "`":
            return code[i:j], j + 1, False
        if ch == "$" and code.startswith("${", j):
            return code[i:j], j + 2, True
        j += 1
    raise ModuleScanError("Unterminated template literal", i, path)


def _unescape(raw: str) -> str:
    def replace(match):
        seq = match.group(1)
        if seq[0] == "u" and len(seq) > 1:
            return chr(int(seq[2:-1] if seq[1] == "{" else seq[1:], 16))
        if seq[0] == "x" and len(seq) > 1:
            return chr(int(seq[1:], 16))
        if seq in ("\n", "\r", "\r\n", "\u2028", "\u2029"):
            return ""
        return _SIMPLE_ESCAPES.get(seq, seq)

    return _ESCAPE.sub(replace, raw)


def _regex_allowed(tokens: List[Token], statement_ends: Set[int]) -> bool:
    """Check whether a `/` after the given tokens starts a regular expression."""
    if not tokens:
        return True
    prev = tokens[-1]
    if prev.typ == "name":
        return prev.value in KEYWORDS_BEFORE_EXPRESSION
    if prev.typ != "punct":
        return False
    if prev.value in (")", "}"):
        return len(tokens) - 1 in statement_ends
    return prev.value not in {"]", "++", "--"}


def _brace_kind(tokens: List[Token]) -> str:
    """Tell a block's `{` from an object literal's by the token before it."""
    if not tokens:
        return "block"
    prev = tokens[-1]
    if prev.typ == "name":
        if prev.value in ("do", "else"):
            return "block"
        return "object" if prev.value in KEYWORDS_BEFORE_EXPRESSION else "block"
    if prev.typ == "punct" and prev.value in (")", ";", "{", "}", "=>"):
        return "block"
    return "object"


def _regex_end(code: str, i: int) -> Optional[int]:
    """
    Find the end of a regular expression literal starting at ``i``.

    Returns None if the line ends first, in which case the `/` is treated as
    a division operator.
    """
    in_class = False
    j = i + 1
    while j < len(code):
        ch = code[j]
        if ch in LINE_TERMINATORS:
            return None
        if ch == "\\":
            j += 2
            continue
        if ch == "[":
            in_class = True
        elif ch == "]":
            in_class = False
        elif ch == "/" and not in_class:
            j += 1
            while j < len(code) and (code[j].isalnum() or code[j] in "_$"):
                j += 1
            return j
        j += 1
    return None


class _DeclarationParser:
    """
    Recognizes import and export declarations in a token stream.

    Only the parts of a declaration that name bindings or specifiers are
    parsed; anything unrecognized is skipped without error.
    """

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.exports: Set[Name] = set()
        self.imports: Dict[str, Set[Name]] = {}

    def parse(self) -> None:
        for i, token in enumerate(self.tokens):
            if token.typ != "name" or token.value not in ("import", "export"):
                continue
            # Member access such as `module.export`
            if i > 0 and self._is_punct(i - 1, ".", "?."):
                continue
            if token.value == "import":
                self._parse_import(i + 1)
            else:
                self._parse_export(i + 1)

    # Token helpers

    def _peek(self, j: int) -> Optional[Token]:
        return self.tokens[j] if 0 <= j < len(self.tokens) else None

    def _is_punct(self, j: int, *values: str) -> bool:
        token = self._peek(j)
        return token is not None and token.typ == "punct" and token.value in values

    def _is_name(self, j: int, *values: str) -> bool:
        token = self._peek(j)
        return token is not None and token.typ == "name" and (not values or token.value in values)

    def _is_string(self, j: int) -> bool:
        token = self._peek(j)
        return token is not None and token.typ == "string"

    def _add_import(self, specifier: str, names: Set[Name]) -> None:
        self.imports.setdefault(specifier, set()).update(names)

    def _from_clause(self, j: int) -> Optional[str]:
        """Return the specifier of a `from '...'` clause at ``j``, if there is one."""
        if self._is_name(j, "from") and self._is_string(j + 1):
            return self.tokens[j + 1].value
        return None

    # Imports

    def _parse_import(self, j: int) -> None:
        # Dynamic import, only analyzable with a string literal argument
        if self._is_punct(j, "("):
            if self._is_string(j + 1) and self._is_punct(j + 2, ")", ","):
                self._add_import(self.tokens[j + 1].value, {Binding.NAMESPACE})
            return

        # Side-effect import
        if self._is_string(j):
            self._add_import(self.tokens[j].value, set())
            return

        # TypeScript `import type ...`, unless `type` is the default binding
        if self._is_name(j, "type", "typeof") and (
            self._is_punct(j + 1, "{", "*")
            or (self._is_name(j + 1) and not self._is_name(j + 1, "from"))
        ):
            j += 1

        names: Set[Name] = set()
        if self._is_name(j) and not self._is_name(j, "from"):
            names.add(Binding.DEFAULT)
            j += 1
            if self._is_punct(j, ","):
                j += 1

        if self._is_punct(j, "*"):
            if not (self._is_name(j + 1, "as") and self._is_name(j + 2)):
                return
            names.add(Binding.NAMESPACE)
            j += 3
        elif self._is_punct(j, "{"):
            parsed = self._parse_specifier_list(j)
            if parsed is None:
                return
            entries, j = parsed
            names.update(_binding_name(imported) for imported, _ in entries)

        specifier = self._from_clause(j)
        if specifier is not None:
            self._add_import(specifier, names)

    def _parse_specifier_list(self, j: int) -> Optional[Tuple[List[Tuple[str, str]], int]]:
        """
        Parse `{ a, b as c, 'd' as e }` starting at the opening brace.

        Returns:
            Tuple of ([(name before `as`, name after `as`), ...], index after
            the closing brace), or None if the list is malformed.
        """
        entries: List[Tuple[str, str]] = []
        j += 1
        while not self._is_punct(j, "}"):
            # TypeScript inline `type` modifier
            if self._is_name(j, "type") and (
                self._is_string(j + 1) or (self._is_name(j + 1) and not self._is_name(j + 1, "as"))
            ):
                j += 1

            if not (self._is_name(j) or self._is_string(j)):
                return None
            left = right = self.tokens[j].value
            j += 1
            if self._is_name(j, "as"):
                if not (self._is_name(j + 1) or self._is_string(j + 1)):
                    return None
                right = self.tokens[j + 1].value
                j += 2
            entries.append((left, right))

            if self._is_punct(j, ","):
                j += 1
            elif not self._is_punct(j, "}"):
                return None
        return entries, j + 1

    # Exports

    def _parse_export(self, j: int) -> None:
        if self._is_name(j, "default"):
            self.exports.add(Binding.DEFAULT)
            return

        if self._is_punct(j, "*"):
            j += 1
            namespace = None
            if self._is_name(j, "as") and (self._is_name(j + 1) or self._is_string(j + 1)):
                namespace = self.tokens[j + 1].value
                j += 2
            specifier = self._from_clause(j)
            if specifier is None:
                return
            self._add_import(specifier, {Binding.NAMESPACE})
            if namespace is not None:
                self.exports.add(_binding_name(namespace))
            return

        if self._is_name(j, "type") and self._is_punct(j + 1, "{"):
            j += 1

        if self._is_punct(j, "{"):
            parsed = self._parse_specifier_list(j)
            if parsed is None:
                return
            entries, j = parsed
            specifier = self._from_clause(j)
            for local, exported in entries:
                self.exports.add(_binding_name(exported))
            if specifier is not None:
                self._add_import(specifier, {_binding_name(local) for local, _ in entries})
            return

        self._parse_export_declaration(j)

    def _parse_export_declaration(self, j: int) -> None:
        if self._is_name(j, "declare"):
            j += 1

        if self._is_name(j, "const") and self._is_name(j + 1, "enum"):
            j += 1

        if self._is_name(j, "const", "let", "var"):
            self.exports.update(self._parse_declarators(j + 1))
            return

        if self._is_name(j, "async") and self._is_name(j + 1, "function"):
            j += 1
        if self._is_name(j, "function"):
            j += 1
            if self._is_punct(j, "*"):
                j += 1
        elif self._is_name(j, "abstract") and self._is_name(j + 1, "class"):
            j += 2
        elif self._is_name(j, "class", "type", "interface", "enum", "namespace", "module"):
            j += 1
        else:
            return

        if self._is_name(j):
            self.exports.add(self.tokens[j].value)

    def _parse_declarators(self, j: int) -> List[str]:
        """Collect the names bound by `a = 1, { b, c: d } = e, [f] = g`."""
        names: List[str] = []
        while True:
            end = self._parse_binding(j, names)
            if end is None:
                return names
            j = end
            # TypeScript type annotation
            if self._is_punct(j, ":"):
                j = self._skip_expression(j + 1, {"=", ",", ";"})
            if self._is_punct(j, "="):
                j = self._skip_expression(j + 1, {",", ";"})
            if not self._is_punct(j, ","):
                return names
            j += 1

    def _parse_binding(self, j: int, names: List[str]) -> Optional[int]:
        """Parse a binding identifier or pattern, returning the index after it."""
        if self._is_name(j):
            names.append(self.tokens[j].value)
            return j + 1

        if self._is_punct(j, "{"):
            j += 1
            while not self._is_punct(j, "}"):
                if self._is_punct(j, "..."):
                    end = self._parse_binding(j + 1, names)
                elif self._is_punct(j, "["):
                    # Computed key, the value must be a pattern
                    j = self._skip_expression(j + 1, {"]"})
                    if not (self._is_punct(j, "]") and self._is_punct(j + 1, ":")):
                        return None
                    end = self._parse_binding(j + 2, names)
                elif self._peek(j) is not None and self._peek(j).typ in ("name", "string", "number"):
                    if self._is_punct(j + 1, ":"):
                        end = self._parse_binding(j + 2, names)
                    elif self._is_name(j):
                        names.append(self.tokens[j].value)
                        end = j + 1
                    else:
                        return None
                else:
                    return None
                if end is None:
                    return None
                j = end
                if self._is_punct(j, "="):
                    j = self._skip_expression(j + 1, {",", "}"})
                if self._is_punct(j, ","):
                    j += 1
                elif not self._is_punct(j, "}"):
                    return None
            return j + 1

        if self._is_punct(j, "["):
            j += 1
            while not self._is_punct(j, "]"):
                if self._is_punct(j, ","):
                    j += 1
                    continue
                if self._is_punct(j, "..."):
                    j += 1
                end = self._parse_binding(j, names)
                if end is None:
                    return None
                j = end
                if self._is_punct(j, "="):
                    j = self._skip_expression(j + 1, {",", "]"})
                if self._is_punct(j, ","):
                    j += 1
                elif not self._is_punct(j, "]"):
                    return None
            return j + 1

        return None

    def _skip_expression(self, j: int, stops: Set[str]) -> int:
        """
        Skip an expression, returning the index of the token that ends it.

        The expression ends at one of ``stops`` or an unmatched closing
        bracket at nesting depth 0, or at a token starting a new line after
        a complete operand (automatic semicolon insertion).
        """
        depth = 0
        while j < len(self.tokens):
            token = self.tokens[j]
            if token.typ == "punct":
                if depth == 0 and token.value in stops:
                    return j
                if token.value in ("(", "[", "{"):
                    depth += 1
                elif token.value in (")", "]", "}"):
                    if depth == 0:
                        return j
                    depth -= 1
            elif depth == 0 and token.newline_before and self._ends_operand(j - 1):
                if token.value not in ("in", "instanceof", "of", "as", "satisfies"):
                    return j
            j += 1
        return j

    def _ends_operand(self, j: int) -> bool:
        token = self._peek(j)
        if token is None:
            return False
        if token.typ == "punct":
            return token.value in (")", "]", "}", "++", "--")
        if token.typ == "name":
            return token.value not in KEYWORDS_BEFORE_EXPRESSION
        return True
