"""Lexer for value literals such as ``Some(42)`` or ``{ owner: 0x00ab, amount: 10 }``."""

import ply.lex as lex

from contract_transcode.errors import LiteralParseError


class LiteralLexer:
    """Lexer for tokenizing value literals.

    Token values are kept as the raw source text; the parser converts them
    so that node spans can be computed from token lengths.
    """

    # Token list
    tokens = [
        "IDENTIFIER",
        "HEX",
        "INTEGER",
        "STRING",
        "CHAR",
        "LBRACE",
        "RBRACE",
        "LBRACKET",
        "RBRACKET",
        "LPAREN",
        "RPAREN",
        "COLON",
        "COMMA",
    ]

    # Simple tokens
    t_LBRACE = r"\{"
    t_RBRACE = r"\}"
    t_LBRACKET = r"\["
    t_RBRACKET = r"\]"
    t_LPAREN = r"\("
    t_RPAREN = r"\)"
    t_COLON = r":"
    t_COMMA = r","

    # Ignored characters (newlines are counted separately)
    t_ignore = " \t\r"

    def __init__(self) -> None:
        self.lexer: lex.LexToken = None  # type: ignore
        # Type name reported by errors, set by the parser per input
        self.expected = "a literal"

    def t_HEX(self, t: lex.LexToken) -> lex.LexToken:
        r"0[xX][0-9a-fA-F_]*"
        return t

    def t_INTEGER(self, t: lex.LexToken) -> lex.LexToken:
        r"[+-]?\d[\d_]*"
        return t

    def t_STRING(self, t: lex.LexToken) -> lex.LexToken:
        r'"([^"\\]|\\.)*"'
        return t

    def t_CHAR(self, t: lex.LexToken) -> lex.LexToken:
        r"'([^'\\]|\\.)+'"
        return t

    def t_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r"[a-zA-Z_][a-zA-Z0-9_]*(?:::[a-zA-Z_][a-zA-Z0-9_]*)*"
        return t

    def t_NEWLINE(self, t: lex.LexToken) -> None:
        r"\n+"
        t.lexer.lineno += len(t.value)

    def t_error(self, t: lex.LexToken) -> None:
        raise LiteralParseError(
            t.value[0], self.expected, (t.lexpos, t.lexpos + 1),
            f"illegal character '{t.value[0]}' at position {t.lexpos}",
        )

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        """Return the next token."""
        return self.lexer.token()

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens
