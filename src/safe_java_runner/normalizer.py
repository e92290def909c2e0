from __future__ import annotations

import re

_COMMENTS_AND_LITERALS = re.compile(
    r"""
    //[^\n]*                  # line comment
    | /\*.*?\*/               # block comment
    | "(?:\\.|[^"\\\n])*"     # string literal
    | '(?:\\.|[^'\\\n])*'     # char literal
    """,
    re.DOTALL | re.VERBOSE,
)

_TEMPLATE = """public class {entry_class} {{
    public static void main(String[] args) {{
        // User code starts here
{body}
        // User code ends here
    }}
}}"""


def _strip_comments_and_literals(source_text: str) -> str:
    """Blank out comments and string/char literals, keeping code tokens.

    Example:
        ```python
        _strip_comments_and_literals('// class Main\\nint x = 1;')  # ' \\nint x = 1;'
        ```
    """
    return _COMMENTS_AND_LITERALS.sub(" ", source_text)


def declares_entry_class(source_text: str, entry_class: str = "Main") -> bool:
    """Return True when the code (outside comments and literals) declares ``class <entry_class>``.

    Example:
        ```python
        declares_entry_class("public class Main { }")  # True
        declares_entry_class('System.out.println("class Main");')  # False
        ```
    """
    pattern = re.compile(rf"\bclass\s+{re.escape(entry_class)}\b")
    return pattern.search(_strip_comments_and_literals(source_text)) is not None


def normalize(source_text: str, entry_class: str = "Main") -> str:
    """Wrap bare statements in a ``main`` method unless the entry class is declared.

    The transform is textual; malformed code still fails at compile time.

    Example:
        ```python
        normalize('System.out.println("hi");')
        ```
    """
    if declares_entry_class(source_text, entry_class):
        return source_text
    return _TEMPLATE.format(entry_class=entry_class, body=source_text)
