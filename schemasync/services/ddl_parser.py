"""DDL text parsing into the schema model.

Lexing is delegated to sqlglot's tokenizer for the detected dialect, so
quoting, comments and string literals follow sqlglot's rules. The statement
grammar on top of it is a small recursive descent over CREATE TABLE and
ALTER TABLE ... ADD, which keeps type, DEFAULT and CHECK text verbatim by
slicing the source between token offsets.
"""

import copy
import logging
import re
from dataclasses import dataclass, field
from typing import Optional

import sqlglot
from sqlglot.errors import TokenError
from sqlglot.tokens import TokenType

from schemasync.models.ddl import Defect, Dialect, ImportResult
from schemasync.models.schema import (
    Cardinality,
    CascadeAction,
    ColumnType,
    DataType,
    ForeignAttribute,
    NormalAttribute,
    PrimaryAttribute,
    Reference,
    Schema,
    Table,
)
from schemasync.services.type_mapping import normalize_identifier, resolve_type
from schemasync.services.validation import validate_schema
from schemasync.utils.constants import ErrorCode

logger = logging.getLogger("ddl-parser")

WORD = "word"
IDENT = "ident"
STRING = "string"
PUNCT = "punct"

_STRING_TOKENS = {TokenType.STRING, TokenType.NATIONAL_STRING}
_PUNCT_TOKENS = {
    TokenType.L_PAREN,
    TokenType.R_PAREN,
    TokenType.COMMA,
    TokenType.SEMICOLON,
    TokenType.DOT,
}

_HEADER_RE = re.compile(r"^\s*--\s*Dialect:\s*(\w+)", re.IGNORECASE | re.MULTILINE)

# Checked in order after the header comment
_DIALECT_MARKERS: list[tuple[Dialect, re.Pattern]] = [
    (Dialect.MYSQL, re.compile(r"`|\bAUTO_INCREMENT\b|\bENGINE\s*=", re.IGNORECASE)),
    (Dialect.SQLSERVER, re.compile(
        r"\bIDENTITY\s*\(|\bNVARCHAR\b|\bGETDATE\s*\(|\bUNIQUEIDENTIFIER\b|\[\w+\]",
        re.IGNORECASE,
    )),
    (Dialect.POSTGRESQL, re.compile(
        r"\b(?:BIG)?SERIAL\b|\bJSONB\b|\bBYTEA\b|\bTIMESTAMPTZ\b",
        re.IGNORECASE,
    )),
    (Dialect.SQLITE, re.compile(r"\bAUTOINCREMENT\b", re.IGNORECASE)),
]


def sniff_dialect(text: str) -> Optional[Dialect]:
    """Guess the dialect of a DDL document.

    The ``-- Dialect:`` header written by the generator wins; otherwise the
    first dialect whose syntax markers appear is chosen.

    Returns:
        The detected dialect, or None when nothing identifies one.
    """
    header = _HEADER_RE.search(text)
    if header:
        name = header.group(1).lower()
        for dialect in Dialect:
            if dialect.value == name:
                return dialect
    for dialect, marker in _DIALECT_MARKERS:
        if marker.search(text):
            return dialect
    return None


@dataclass
class _Lexeme:
    kind: str
    text: str
    start: int
    end: int

    @property
    def upper(self) -> str:
        return self.text.upper()


class _MalformedStatement(Exception):
    """A statement that cannot be parsed; reported as a defect."""

    def __init__(self, message: str, table: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.table = table


class _Cursor:
    """Read position over the lexemes of one statement or element."""

    def __init__(self, lexemes: list[_Lexeme], source: str):
        self.lexemes = lexemes
        self.source = source
        self.pos = 0

    @property
    def done(self) -> bool:
        return self.pos >= len(self.lexemes)

    def peek(self, offset: int = 0) -> Optional[_Lexeme]:
        idx = self.pos + offset
        return self.lexemes[idx] if idx < len(self.lexemes) else None

    def advance(self) -> _Lexeme:
        lex = self.peek()
        if lex is None:
            raise _MalformedStatement("Unexpected end of statement")
        self.pos += 1
        return lex

    def at_word(self, *words: str, offset: int = 0) -> bool:
        lex = self.peek(offset)
        return lex is not None and lex.kind == WORD and lex.upper in words

    def accept_word(self, *words: str) -> Optional[str]:
        if self.at_word(*words):
            return self.advance().upper
        return None

    def expect_word(self, *words: str) -> str:
        found = self.accept_word(*words)
        if found is None:
            raise _MalformedStatement(f"Expected {' or '.join(words)}, found {self.describe()}")
        return found

    def at_punct(self, char: str, offset: int = 0) -> bool:
        lex = self.peek(offset)
        return lex is not None and lex.kind == PUNCT and lex.text == char

    def accept_punct(self, char: str) -> bool:
        if self.at_punct(char):
            self.pos += 1
            return True
        return False

    def expect_punct(self, char: str) -> None:
        if not self.accept_punct(char):
            raise _MalformedStatement(f"Expected '{char}', found {self.describe()}")

    def describe(self) -> str:
        lex = self.peek()
        return f"'{lex.text}'" if lex is not None else "end of statement"

    def skip_group(self) -> str:
        """Consume a parenthesized group and return its inner source text."""
        opening = self.advance()
        depth = 1
        while True:
            lex = self.peek()
            if lex is None:
                raise _MalformedStatement("Unbalanced parentheses")
            self.pos += 1
            if lex.kind == PUNCT and lex.text == "(":
                depth += 1
            elif lex.kind == PUNCT and lex.text == ")":
                depth -= 1
                if depth == 0:
                    return self.source[opening.end:lex.start].strip()


@dataclass
class _ColumnDraft:
    name: str
    type_text: str
    not_null: bool = False
    unique: bool = False
    primary: bool = False
    identity: bool = False
    default: Optional[str] = None
    check: Optional[str] = None


@dataclass
class _ForeignKeyDraft:
    column: str
    ref_table: str
    ref_column: Optional[str]
    on_delete: Optional[CascadeAction] = None
    on_update: Optional[CascadeAction] = None


@dataclass
class _TableDraft:
    name: str
    statement: int
    columns: list[_ColumnDraft] = field(default_factory=list)
    primary_key: list[str] = field(default_factory=list)
    foreign_keys: dict[str, _ForeignKeyDraft] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return normalize_identifier(self.name).lower()

    def column(self, name: str) -> Optional[_ColumnDraft]:
        wanted = name.lower()
        for col in self.columns:
            if col.name.lower() == wanted:
                return col
        return None

    def primary_columns(self) -> list[str]:
        """Primary key column names, lower-cased, inline ones first."""
        names: list[str] = []
        for name in [c.name for c in self.columns if c.primary] + self.primary_key:
            if name.lower() not in names:
                names.append(name.lower())
        return names


class DDLParser:
    """Parses DDL text into a Schema, collecting every defect found."""

    # Words that end a column type and start a column clause
    CLAUSE_WORDS = {
        "NOT", "NULL", "PRIMARY", "UNIQUE", "DEFAULT", "CHECK", "REFERENCES",
        "AUTO_INCREMENT", "AUTOINCREMENT", "IDENTITY", "GENERATED", "CONSTRAINT",
        "COLLATE", "COMMENT", "ON", "UNSIGNED", "SIGNED", "ZEROFILL", "CHARSET",
    }

    TABLE_MODIFIERS = {"TEMP", "TEMPORARY", "GLOBAL", "LOCAL", "UNLOGGED"}

    def __init__(self, default_dialect: Optional[Dialect] = None):
        """Initialize the parser.

        Args:
            default_dialect: Dialect used when a call names none. When
                None the dialect is sniffed from the input.
        """
        self.default_dialect = default_dialect

    def parse(self, text: str, dialect: "Dialect | str | None" = None) -> ImportResult:
        """Parse a DDL document into a schema.

        Args:
            text: The DDL text.
            dialect: Dialect to lex with. Falls back to the parser default,
                then to sniffing.

        Returns:
            An ImportResult carrying the schema, or every defect found and no
            schema. Warnings list clauses and statements that were ignored.

        Raises:
            UnsupportedDialectError: If the dialect name is unknown.
        """
        if text is None or not text.strip():
            return self._failure([Defect(code=ErrorCode.EMPTY_INPUT, message="DDL input is empty")])

        # Step 1: Pick the dialect
        if dialect is not None:
            chosen = Dialect.parse(dialect)
        else:
            chosen = self.default_dialect or sniff_dialect(text)
        logger.debug("Parsing DDL as %s", chosen.value if chosen else "generic SQL")

        # Step 2: Lex with sqlglot
        try:
            lexemes = self._lex(text, chosen)
        except TokenError as e:
            return self._failure(
                [Defect(code=ErrorCode.MALFORMED_STATEMENT, message=f"Could not tokenize DDL: {e}")],
                dialect=chosen,
            )

        # Step 3: Parse statement by statement
        drafts: list[_TableDraft] = []
        defects: list[Defect] = []
        warnings: list[str] = []
        saw_create = False

        for number, statement in enumerate(self._split_statements(lexemes), start=1):
            cursor = _Cursor(statement, text)
            try:
                kind = self._statement_kind(cursor)
                if kind == "create":
                    saw_create = True
                    drafts.append(self._parse_create_table(cursor, number, warnings))
                elif kind == "alter":
                    self._parse_alter_table(cursor, drafts, warnings)
                else:
                    warnings.append(
                        f"Statement {number} skipped (unsupported): {self._preview(statement, text)}"
                    )
            except _MalformedStatement as e:
                logger.debug("Statement %d malformed: %s", number, e.message)
                defects.append(Defect(
                    code=ErrorCode.MALFORMED_STATEMENT,
                    message=f"Statement {number}: {e.message}",
                    table=e.table,
                    statement=number,
                ))

        if not saw_create:
            defects.append(Defect(
                code=ErrorCode.NO_TABLES,
                message="No CREATE TABLE statements found",
            ))
            return self._failure(defects, warnings, chosen)

        # Step 4: Resolve keys across all tables, then validate
        schema = self._build_schema(drafts, chosen, defects, warnings)
        defects.extend(validate_schema(schema))

        if defects:
            return self._failure(defects, warnings, chosen)

        logger.debug("Parsed %d table(s) with %d warning(s)", len(schema.tables), len(warnings))
        return ImportResult(
            status="success",
            parsed_schema=schema,
            warnings=warnings,
            dialect=chosen,
        )

    @staticmethod
    def _failure(
        defects: list[Defect],
        warnings: Optional[list[str]] = None,
        dialect: Optional[Dialect] = None
    ) -> ImportResult:
        logger.warning("DDL import rejected with %d defect(s)", len(defects))
        return ImportResult(
            status="error",
            defects=defects,
            warnings=warnings or [],
            dialect=dialect,
        )

    def _lex(self, text: str, dialect: Optional[Dialect]) -> list[_Lexeme]:
        tokens = sqlglot.tokenize(text, read=dialect.sqlglot_name if dialect else None)
        lexemes: list[_Lexeme] = []
        for token in tokens:
            start, end = token.start, token.end + 1
            if token.token_type in _STRING_TOKENS:
                lexemes.append(_Lexeme(STRING, token.text, start, end))
            elif token.token_type == TokenType.IDENTIFIER:
                lexemes.append(_Lexeme(IDENT, token.text, start, end))
            elif token.token_type in _PUNCT_TOKENS:
                lexemes.append(_Lexeme(PUNCT, token.text, start, end))
            else:
                # multi-word keywords (PRIMARY KEY, DOUBLE PRECISION) become separate words
                for match in re.finditer(r"\S+", text[start:end]):
                    lexemes.append(_Lexeme(WORD, match.group(), start + match.start(), start + match.end()))
        return lexemes

    @staticmethod
    def _split_statements(lexemes: list[_Lexeme]) -> list[list[_Lexeme]]:
        statements: list[list[_Lexeme]] = []
        current: list[_Lexeme] = []
        for lex in lexemes:
            if lex.kind == PUNCT and lex.text == ";":
                if current:
                    statements.append(current)
                current = []
            else:
                current.append(lex)
        if current:
            statements.append(current)
        return statements

    @staticmethod
    def _preview(statement: list[_Lexeme], source: str, limit: int = 60) -> str:
        text = " ".join(source[statement[0].start:statement[-1].end].split())
        return text if len(text) <= limit else text[:limit] + "..."

    def _statement_kind(self, cursor: _Cursor) -> Optional[str]:
        if cursor.at_word("CREATE"):
            offset = 1
            if cursor.at_word("OR", offset=1) and cursor.at_word("REPLACE", offset=2):
                offset = 3
            while cursor.at_word(*self.TABLE_MODIFIERS, offset=offset):
                offset += 1
            if cursor.at_word("TABLE", offset=offset):
                cursor.pos += offset + 1
                return "create"
        elif cursor.at_word("ALTER") and cursor.at_word("TABLE", offset=1):
            cursor.pos += 2
            return "alter"
        return None

    def _read_name(self, cursor: _Cursor) -> str:
        """Read a possibly schema-qualified name and return its last part."""
        lex = cursor.advance()
        if lex.kind not in (WORD, IDENT):
            raise _MalformedStatement(f"Expected a name, found '{lex.text}'")
        name = lex.text
        while cursor.at_punct("."):
            cursor.advance()
            part = cursor.advance()
            if part.kind not in (WORD, IDENT):
                raise _MalformedStatement(f"Expected a name after '.', found '{part.text}'")
            name = part.text
        return name

    def _read_name_list(self, cursor: _Cursor) -> list[str]:
        cursor.expect_punct("(")
        names = [self._read_name(cursor)]
        cursor.accept_word("ASC", "DESC")
        while cursor.accept_punct(","):
            names.append(self._read_name(cursor))
            cursor.accept_word("ASC", "DESC")
        cursor.expect_punct(")")
        return names

    @staticmethod
    def _split_top_level(cursor: _Cursor) -> list[list[_Lexeme]]:
        """Split the rest of a cursor on depth-zero commas."""
        parts: list[list[_Lexeme]] = [[]]
        depth = 0
        while not cursor.done:
            lex = cursor.advance()
            if lex.kind == PUNCT and lex.text == "(":
                depth += 1
            elif lex.kind == PUNCT and lex.text == ")":
                depth -= 1
            elif lex.kind == PUNCT and lex.text == "," and depth == 0:
                parts.append([])
                continue
            parts[-1].append(lex)
        if depth != 0:
            raise _MalformedStatement("Unbalanced parentheses")
        return parts

    def _read_table_body(self, cursor: _Cursor, table: str) -> list[list[_Lexeme]]:
        if not cursor.at_punct("("):
            raise _MalformedStatement(
                f"Expected '(' after table name {table}, found {cursor.describe()}", table=table
            )
        cursor.advance()
        elements: list[list[_Lexeme]] = [[]]
        depth = 0
        while True:
            lex = cursor.peek()
            if lex is None:
                raise _MalformedStatement(f"Unbalanced parentheses in table {table}", table=table)
            cursor.pos += 1
            if lex.kind == PUNCT and lex.text == "(":
                depth += 1
            elif lex.kind == PUNCT and lex.text == ")":
                if depth == 0:
                    return elements
                depth -= 1
            elif lex.kind == PUNCT and lex.text == "," and depth == 0:
                elements.append([])
                continue
            elements[-1].append(lex)

    def _parse_create_table(self, cursor: _Cursor, number: int, warnings: list[str]) -> _TableDraft:
        if cursor.at_word("IF") and cursor.at_word("NOT", offset=1) and cursor.at_word("EXISTS", offset=2):
            cursor.pos += 3
        if cursor.done or cursor.at_punct("("):
            raise _MalformedStatement("CREATE TABLE without a table name")
        name = self._read_name(cursor)
        draft = _TableDraft(name=name, statement=number)

        try:
            elements = self._read_table_body(cursor, name)
            for element in elements:
                if not element:
                    raise _MalformedStatement(f"Empty element in table {name}")
                self._parse_element(_Cursor(element, cursor.source), draft, warnings)
            self._check_key_columns(draft)
        except _MalformedStatement as e:
            raise _MalformedStatement(e.message, table=name) from None

        if not cursor.done:
            logger.debug("Ignored table options after %s: %s", name, cursor.describe())
        return draft

    def _parse_alter_table(self, cursor: _Cursor, drafts: list[_TableDraft], warnings: list[str]) -> None:
        cursor.accept_word("ONLY")
        if cursor.at_word("IF") and cursor.at_word("EXISTS", offset=1):
            cursor.pos += 2
        name = self._read_name(cursor)
        key = normalize_identifier(name).lower()
        index = next((i for i, d in enumerate(drafts) if d.key == key), None)
        if index is None:
            raise _MalformedStatement(f"ALTER TABLE references unknown table {name}", table=name)

        # Actions apply to a copy; a rejected statement leaves the table as it was
        draft = copy.deepcopy(drafts[index])
        notes: list[str] = []
        try:
            for action in self._split_top_level(cursor):
                sub = _Cursor(action, cursor.source)
                if not sub.accept_word("ADD"):
                    notes.append(f"Ignored ALTER TABLE clause on {name}: {sub.describe()}")
                    continue
                if sub.accept_word("CONSTRAINT"):
                    constraint = self._read_name(sub)
                    if not self._parse_table_constraint(sub, draft, notes):
                        raise _MalformedStatement(f"Unsupported constraint {constraint} on {name}")
                    continue
                if self._parse_table_constraint(sub, draft, notes):
                    continue
                sub.accept_word("COLUMN")
                draft.columns.append(self._parse_column(sub, draft, notes))
            self._check_key_columns(draft)
        except _MalformedStatement as e:
            raise _MalformedStatement(e.message, table=name) from None

        drafts[index] = draft
        warnings.extend(notes)

    def _check_key_columns(self, draft: _TableDraft) -> None:
        for column in draft.primary_key:
            if draft.column(column) is None:
                raise _MalformedStatement(f"Primary key column {column} is not a column of {draft.name}")
        for fk in draft.foreign_keys.values():
            if draft.column(fk.column) is None:
                raise _MalformedStatement(f"Foreign key column {fk.column} is not a column of {draft.name}")

    def _parse_element(self, cursor: _Cursor, draft: _TableDraft, warnings: list[str]) -> None:
        if cursor.accept_word("CONSTRAINT"):
            constraint = self._read_name(cursor)
            if not self._parse_table_constraint(cursor, draft, warnings):
                raise _MalformedStatement(f"Unsupported constraint {constraint} in table {draft.name}")
            return
        if self._parse_table_constraint(cursor, draft, warnings):
            return
        draft.columns.append(self._parse_column(cursor, draft, warnings))

    def _parse_table_constraint(self, cursor: _Cursor, draft: _TableDraft, warnings: list[str]) -> bool:
        """Parse a table-level constraint if one starts here.

        Returns:
            False when the element is not a table constraint.
        """
        if cursor.at_word("PRIMARY") and cursor.at_word("KEY", offset=1):
            cursor.pos += 2
            cursor.accept_word("CLUSTERED", "NONCLUSTERED")
            draft.primary_key.extend(self._read_name_list(cursor))
            return True

        if cursor.at_word("FOREIGN") and cursor.at_word("KEY", offset=1):
            cursor.pos += 2
            columns = self._read_name_list(cursor)
            cursor.expect_word("REFERENCES")
            fk = self._parse_references(cursor, columns[0])
            if len(columns) > 1:
                warnings.append(
                    f"Ignored multi-column foreign key ({', '.join(columns)}) on {draft.name}"
                )
            else:
                self._add_foreign_key(draft, fk, warnings)
            return True

        if cursor.at_word("UNIQUE") and (
            cursor.at_punct("(", offset=1) or cursor.at_word("KEY", "INDEX", offset=1)
        ):
            cursor.advance()
            if cursor.accept_word("KEY", "INDEX") and not cursor.at_punct("("):
                self._read_name(cursor)
            cursor.accept_word("CLUSTERED", "NONCLUSTERED")
            columns = self._read_name_list(cursor)
            if len(columns) == 1:
                target = draft.column(columns[0])
                if target is None:
                    raise _MalformedStatement(
                        f"Unique column {columns[0]} is not a column of {draft.name}"
                    )
                target.unique = True
            else:
                warnings.append(
                    f"Ignored multi-column unique constraint ({', '.join(columns)}) on {draft.name}"
                )
            return True

        if cursor.at_word("CHECK") and cursor.at_punct("(", offset=1):
            warnings.append(f"Ignored table-level CHECK constraint on {draft.name}")
            return True

        if cursor.at_word("FULLTEXT", "SPATIAL"):
            warnings.append(f"Ignored {cursor.peek().upper} index on {draft.name}")
            return True

        if cursor.at_word("KEY", "INDEX"):
            named = cursor.peek(1) is not None and cursor.peek(1).kind in (WORD, IDENT)
            if cursor.at_punct("(", offset=1) or (
                named and cursor.at_punct("(", offset=2) and not self._is_number(cursor.peek(3))
            ):
                warnings.append(f"Ignored index definition on {draft.name}")
                return True

        return False

    @staticmethod
    def _is_number(lex: Optional[_Lexeme]) -> bool:
        return lex is not None and lex.kind == WORD and lex.text.isdigit()

    def _add_foreign_key(self, draft: _TableDraft, fk: _ForeignKeyDraft, warnings: list[str]) -> None:
        key = fk.column.lower()
        if key in draft.foreign_keys:
            warnings.append(
                f"Column {draft.name}.{fk.column} has more than one foreign key; keeping the last"
            )
        draft.foreign_keys[key] = fk

    def _parse_references(self, cursor: _Cursor, column: str) -> _ForeignKeyDraft:
        ref_table = self._read_name(cursor)
        ref_column = None
        if cursor.at_punct("("):
            ref_columns = self._read_name_list(cursor)
            ref_column = ref_columns[0]
        fk = _ForeignKeyDraft(column=column, ref_table=ref_table, ref_column=ref_column)

        while not cursor.done:
            if cursor.at_word("ON") and cursor.at_word("DELETE", "UPDATE", offset=1):
                cursor.advance()
                event = cursor.advance().upper
                action = self._read_action(cursor)
                if event == "DELETE":
                    fk.on_delete = action
                else:
                    fk.on_update = action
            elif cursor.accept_word("MATCH"):
                cursor.advance()
            elif cursor.accept_word("DEFERRABLE"):
                continue
            elif cursor.at_word("NOT") and cursor.at_word("DEFERRABLE", offset=1):
                cursor.pos += 2
            elif cursor.accept_word("INITIALLY"):
                cursor.advance()
            else:
                break
        return fk

    @staticmethod
    def _read_action(cursor: _Cursor) -> CascadeAction:
        if cursor.accept_word("CASCADE"):
            return CascadeAction.CASCADE
        if cursor.accept_word("RESTRICT"):
            return CascadeAction.RESTRICT
        if cursor.accept_word("NO"):
            cursor.expect_word("ACTION")
            return CascadeAction.NO_ACTION
        if cursor.accept_word("SET"):
            which = cursor.expect_word("NULL", "DEFAULT")
            return CascadeAction.SET_NULL if which == "NULL" else CascadeAction.SET_DEFAULT
        raise _MalformedStatement(f"Invalid referential action {cursor.describe()}")

    def _at_clause(self, cursor: _Cursor) -> bool:
        if cursor.at_word(*self.CLAUSE_WORDS):
            return True
        return cursor.at_word("CHARACTER") and cursor.at_word("SET", offset=1)

    def _consume_unit(self, cursor: _Cursor) -> None:
        if cursor.at_punct("("):
            cursor.skip_group()
        else:
            cursor.advance()

    def _parse_column(self, cursor: _Cursor, draft: _TableDraft, warnings: list[str]) -> _ColumnDraft:
        name = self._read_name(cursor)

        first = cursor.peek()
        depth = 0
        last = None
        while not cursor.done:
            if depth == 0 and self._at_clause(cursor):
                break
            lex = cursor.advance()
            last = lex
            if lex.kind == PUNCT and lex.text == "(":
                depth += 1
            elif lex.kind == PUNCT and lex.text == ")":
                depth -= 1
        if last is None:
            raise _MalformedStatement(f"Column {name} in table {draft.name} has no type")

        column = _ColumnDraft(name=name, type_text=cursor.source[first.start:last.end])
        where = f"{draft.name}.{name}"

        while not cursor.done:
            if cursor.accept_word("NOT"):
                cursor.expect_word("NULL")
                column.not_null = True
            elif cursor.accept_word("NULL"):
                column.not_null = False
            elif cursor.at_word("PRIMARY") and cursor.at_word("KEY", offset=1):
                cursor.pos += 2
                cursor.accept_word("ASC", "DESC")
                cursor.accept_word("CLUSTERED", "NONCLUSTERED")
                column.primary = True
            elif cursor.accept_word("UNIQUE"):
                cursor.accept_word("KEY")
                column.unique = True
            elif cursor.accept_word("DEFAULT"):
                column.default = self._read_expression(cursor, where)
            elif cursor.accept_word("CHECK"):
                if not cursor.at_punct("("):
                    raise _MalformedStatement(f"CHECK on {where} needs a parenthesized expression")
                column.check = cursor.skip_group()
            elif cursor.accept_word("REFERENCES"):
                self._add_foreign_key(draft, self._parse_references(cursor, name), warnings)
            elif cursor.accept_word("AUTO_INCREMENT", "AUTOINCREMENT"):
                column.identity = True
            elif cursor.accept_word("IDENTITY"):
                column.identity = True
                if cursor.at_punct("("):
                    cursor.skip_group()
            elif cursor.accept_word("GENERATED"):
                self._parse_generated(cursor, column, where, warnings)
            elif cursor.accept_word("CONSTRAINT"):
                self._read_name(cursor)
            elif cursor.accept_word("COLLATE"):
                cursor.advance()
            elif cursor.accept_word("COMMENT"):
                cursor.advance()
            elif cursor.accept_word("CHARSET"):
                cursor.advance()
            elif cursor.at_word("CHARACTER") and cursor.at_word("SET", offset=1):
                cursor.pos += 2
                cursor.advance()
            elif cursor.at_word("ON") and cursor.at_word("UPDATE", offset=1):
                cursor.pos += 2
                self._read_expression(cursor, where)
                warnings.append(f"Ignored ON UPDATE clause on {where}")
            elif cursor.at_word("UNSIGNED", "SIGNED", "ZEROFILL"):
                warnings.append(f"Ignored {cursor.advance().upper} modifier on {where}")
            else:
                unknown = cursor.advance()
                if cursor.at_punct("("):
                    cursor.skip_group()
                warnings.append(f"Ignored unknown clause '{unknown.text}' on {where}")
        return column

    def _read_expression(self, cursor: _Cursor, where: str) -> Optional[str]:
        """Read a DEFAULT or ON UPDATE expression up to the next column clause."""
        first = cursor.peek()
        if first is None:
            raise _MalformedStatement(f"Missing expression on {where}")
        self._consume_unit(cursor)
        while not cursor.done and not self._at_clause(cursor):
            self._consume_unit(cursor)
        last = cursor.lexemes[cursor.pos - 1]
        expression = cursor.source[first.start:last.end].strip()
        if expression.upper() == "NULL":
            return None
        return expression

    def _parse_generated(self, cursor: _Cursor, column: _ColumnDraft, where: str, warnings: list[str]) -> None:
        if not cursor.accept_word("ALWAYS"):
            cursor.expect_word("BY")
            cursor.expect_word("DEFAULT")
            if cursor.at_word("ON") and cursor.at_word("NULL", offset=1):
                cursor.pos += 2
        cursor.expect_word("AS")
        if cursor.accept_word("IDENTITY"):
            column.identity = True
            if cursor.at_punct("("):
                cursor.skip_group()
            return
        if not cursor.at_punct("("):
            raise _MalformedStatement(f"Expected IDENTITY or an expression after GENERATED on {where}")
        cursor.skip_group()
        cursor.accept_word("STORED", "VIRTUAL")
        warnings.append(f"Ignored generated column expression on {where}")

    def _build_schema(
        self,
        drafts: list[_TableDraft],
        dialect: Optional[Dialect],
        defects: list[Defect],
        warnings: list[str]
    ) -> Schema:
        """Turn table drafts into a Schema once every table is known."""
        by_key: dict[str, _TableDraft] = {}
        for draft in drafts:
            by_key.setdefault(draft.key, draft)

        tables: list[Table] = []
        for index, draft in enumerate(drafts, start=1):
            pk_columns = draft.primary_columns()
            own_keys = [c for c in pk_columns if c not in draft.foreign_keys]
            if len(own_keys) > 1:
                defects.append(Defect(
                    code=ErrorCode.MULTIPLE_PRIMARY_KEYS,
                    message=(
                        f"Composite primary key ({', '.join(own_keys)}) on {draft.name} "
                        "is not supported"
                    ),
                    table=draft.name,
                    statement=draft.statement,
                ))

            attributes = []
            for col in draft.columns:
                key = col.name.lower()
                in_pk = key in pk_columns
                common = dict(
                    name=col.name,
                    data_type=self._column_type(col, draft, dialect, warnings),
                    default=col.default,
                    check=col.check,
                )
                fk = draft.foreign_keys.get(key)
                ref_column = self._target_column(fk, by_key) if fk is not None else None

                if fk is not None and ref_column is None:
                    defects.append(Defect(
                        code=ErrorCode.UNRESOLVED_REFERENCE,
                        message=(
                            f"Foreign key {draft.name}.{col.name} references {fk.ref_table} "
                            "without a column list and that table has no single-column primary key"
                        ),
                        table=draft.name,
                        attribute=col.name,
                        statement=draft.statement,
                    ))
                    attributes.append(NormalAttribute(not_null=col.not_null or in_pk, unique=col.unique, **common))
                elif fk is not None:
                    attributes.append(ForeignAttribute(
                        reference=Reference(table=fk.ref_table, attribute=ref_column),
                        cardinality=Cardinality.ONE_TO_MANY,
                        on_delete=fk.on_delete,
                        on_update=fk.on_update,
                        not_null=col.not_null or in_pk,
                        unique=col.unique,
                        **common,
                    ))
                elif in_pk and len(own_keys) == 1:
                    attributes.append(PrimaryAttribute(**common))
                else:
                    attributes.append(NormalAttribute(not_null=col.not_null or in_pk, unique=col.unique, **common))

            tables.append(Table(id=f"table-{index}", name=draft.name, attributes=attributes))
        return Schema(tables=tables)

    @staticmethod
    def _target_column(fk: _ForeignKeyDraft, by_key: dict[str, _TableDraft]) -> Optional[str]:
        """Referenced column, defaulting to the target table's primary key."""
        if fk.ref_column is not None:
            return fk.ref_column
        target = by_key.get(normalize_identifier(fk.ref_table).lower())
        if target is None:
            return None
        pk_columns = target.primary_columns()
        if len(pk_columns) != 1:
            return None
        column = target.column(pk_columns[0])
        return column.name if column is not None else None

    @staticmethod
    def _column_type(
        col: _ColumnDraft,
        draft: _TableDraft,
        dialect: Optional[Dialect],
        warnings: list[str]
    ) -> ColumnType:
        column_type = resolve_type(col.type_text, dialect)
        if column_type.raw is not None:
            warnings.append(
                f"Unrecognized type '{column_type.raw}' on {draft.name}.{col.name} kept as written"
            )
        if not col.identity:
            return column_type
        if column_type.kind in (DataType.INTEGER, DataType.SMALLINT):
            return ColumnType(kind=DataType.SERIAL)
        if column_type.kind == DataType.BIGINT:
            return ColumnType(kind=DataType.BIGSERIAL)
        if column_type.kind not in (DataType.SERIAL, DataType.BIGSERIAL):
            warnings.append(f"Ignored auto-increment on non-integer column {draft.name}.{col.name}")
        return column_type


def parse_ddl(text: str, dialect: "Dialect | str | None" = None) -> ImportResult:
    """Parse DDL text with a one-off parser."""
    return DDLParser().parse(text, dialect)
