"""Shared fixtures: a hand-built snapshot of a users table and a fake describer."""

import pytest

from sqlcheck.architecture.onto_sql import (
    Column,
    DatabaseSchema,
    DataType,
    FunctionSignature,
    OutputColumn,
    ParameterInfo,
    QueryDescription,
    Schema,
    Table,
)
from sqlcheck.errors import DescribeError

INTEGER = DataType.scalar("integer")
BIGINT = DataType.scalar("bigint")
TEXT = DataType.scalar("text")
BIT = DataType.scalar("bit")
UUID = DataType.scalar("uuid")
MOOD = DataType.enum("mood", ["sad", "ok", "happy"])


class FakeDescriber:
    """Describer answering from a dictionary and counting round trips."""

    def __init__(self, answers: dict[str, QueryDescription | DescribeError]):
        self.answers = answers
        self.calls: list[str] = []

    def describe(self, query_text, schema):
        self.calls.append(query_text)
        if query_text not in self.answers:
            return DescribeError(f'relation for "{query_text}" does not exist')
        return self.answers[query_text]


def _table(name: str, oid: int, columns: list[tuple[str, DataType, bool]]) -> Table:
    return Table(
        name=name,
        schema_name="public",
        oid=oid,
        columns=tuple(
            Column(name=n, data_type=t, nullable=nullable, ordinal_position=i + 1)
            for i, (n, t, nullable) in enumerate(columns)
        ),
    )


@pytest.fixture()
def users_schema() -> DatabaseSchema:
    """Snapshot of users(user_id bigserial, username text, active bit, roles text[], codes uuid[], mood mood)."""
    users = _table(
        "users",
        16400,
        [
            ("user_id", BIGINT, False),
            ("username", TEXT, False),
            ("active", BIT, False),
            ("roles", DataType.array_of(TEXT), False),
            ("codes", DataType.array_of(UUID), False),
            ("nickname", TEXT, True),
            ("mood", MOOD, True),
        ],
    )
    return DatabaseSchema(
        schemas={"public": Schema(name="public", tables={"users": users})},
        enums={"mood": MOOD.enum_values},
        functions={
            "increment": (
                FunctionSignature(
                    name="increment",
                    schema_name="public",
                    parameter_names=("val",),
                    parameter_types=(INTEGER,),
                    return_type=INTEGER,
                ),
            )
        },
        types={23: INTEGER, 20: BIGINT, 25: TEXT, 1560: BIT, 2950: UUID, 1009: DataType.array_of(TEXT)},
    )


def column(name: str, data_type: DataType, nullable: bool = False) -> OutputColumn:
    return OutputColumn(name=name, data_type=data_type, nullable=nullable, from_table=True)


def parameter(position: int, name: str, data_type: DataType) -> ParameterInfo:
    return ParameterInfo(position=position, name=name, data_type=data_type)


@pytest.fixture()
def users_describer() -> FakeDescriber:
    """Describe answers for the queries used by the analyzer tests."""
    return FakeDescriber(
        {
            "SELECT * FROM users": QueryDescription(
                columns=(
                    column("user_id", BIGINT),
                    column("username", TEXT),
                    column("active", BIT),
                )
            ),
            "SELECT roles, codes FROM users": QueryDescription(
                columns=(
                    column("roles", DataType.array_of(TEXT)),
                    column("codes", DataType.array_of(UUID)),
                )
            ),
            "SELECT nickname, mood FROM users": QueryDescription(
                columns=(column("nickname", TEXT, True), column("mood", MOOD, True))
            ),
            "SELECT COUNT(*) FROM users": QueryDescription(
                columns=(OutputColumn(name="count", data_type=BIGINT),)
            ),
            "SELECT * FROM users WHERE active = @active": QueryDescription(
                parameters=(parameter(1, "active", BIT),),
                columns=(
                    column("user_id", BIGINT),
                    column("username", TEXT),
                    column("active", BIT),
                ),
            ),
            "SELECT username FROM users WHERE user_id = @user_id": QueryDescription(
                parameters=(parameter(1, "user_id", BIGINT),),
                columns=(column("username", TEXT),),
            ),
            "SELECT username FROM users WHERE user_id = ANY(@user_ids)": QueryDescription(
                parameters=(parameter(1, "user_ids", DataType.array_of(BIGINT)),),
                columns=(column("username", TEXT),),
            ),
            "DELETE FROM users WHERE user_id = @user_id": QueryDescription(
                parameters=(parameter(1, "user_id", BIGINT),),
            ),
        }
    )
