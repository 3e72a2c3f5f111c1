"""Tests for the end-to-end throws-clause decision on single methods."""

import pytest
from conftest import make_method, t

from throwspec.analyzer import Finding, NoFinding, ThrowSpecificityCheck, describe
from throwspec.enums import FixKind, Modifier, SkipReason
from throwspec.fixes import MAX_CHECKED_EXCEPTIONS
from throwspec.models import Block, CatchClause, Invoke, Throw, ThrowsEntry, Try

IO = "java.io.IOException"
SQL = "java.sql.SQLException"


def names(types):
    return [x.qualified_name for x in types]


@pytest.fixture
def check(hierarchy) -> ThrowSpecificityCheck:
    return ThrowSpecificityCheck(hierarchy)


class TestScenarios:
    """The canonical decisions the check must make."""

    def test_only_unchecked_deletes_clause(self, check):
        method = make_method(["java.lang.Exception"], body=[Throw(t("java.lang.IllegalStateException"))])

        verdict = check.analyze(method)

        assert isinstance(verdict, Finding)
        assert verdict.target == []
        assert check.render_fix(verdict).kind == FixKind.DELETE

    def test_two_checked_exceptions(self, check):
        method = make_method(["java.lang.Exception"], body=[Throw(t(IO)), Throw(t(SQL))])

        verdict = check.analyze(method)

        assert isinstance(verdict, Finding)
        assert names(verdict.target) == [IO, SQL]
        assert check.render_fix(verdict).kind == FixKind.REPLACE

    def test_subtype_and_supertype_in_branches(self, check):
        body = [
            Block([Throw(t("java.io.FileNotFoundException"))]),
            Block([Throw(t(IO))]),
        ]
        method = make_method(["java.lang.Exception"], body=body)

        verdict = check.analyze(method)

        assert isinstance(verdict, Finding)
        assert names(verdict.target) == [IO]

    def test_too_many_unrelated(self, check):
        body = [
            Throw(t(IO)),
            Throw(t(SQL)),
            Throw(t("java.lang.InterruptedException")),
            Throw(t("java.util.concurrent.TimeoutException")),
        ]
        method = make_method(["java.lang.Exception"], body=body)

        assert check.analyze(method) == NoFinding(SkipReason.TOO_MANY_EXCEPTIONS)

    def test_public_method_untouched(self, check):
        method = make_method(
            ["java.lang.Exception"], (Modifier.PUBLIC,), body=[Throw(t(IO)), Throw(t(SQL))]
        )

        assert check.analyze(method) == NoFinding(SkipReason.UNSAFE_TO_MODIFY)

    def test_overriding_method_untouched(self, check):
        method = make_method(["java.lang.Exception"], body=[Throw(t(IO))], overrides=True)

        assert check.analyze(method) == NoFinding(SkipReason.OVERRIDES_SUPERTYPE)


class TestVerdicts:
    def test_throwable_declared(self, check):
        method = make_method(["java.lang.Throwable"], body=[Throw(t(SQL))])

        verdict = check.analyze(method)

        assert isinstance(verdict, Finding)
        assert verdict.declared == t("java.lang.Throwable")

    def test_body_throws_broad(self, check):
        method = make_method(
            ["java.lang.Exception"],
            body=[Invoke("com.acme.Repo.load", throws=[t("java.lang.Exception")])],
        )

        assert check.analyze(method) == NoFinding(SkipReason.BROAD_EXCEPTION_THROWN)

    def test_caught_broad_is_fine(self, check):
        body = [
            Try(
                body=[Invoke("com.acme.Repo.load", throws=[t("java.lang.Exception")])],
                catches=[CatchClause(types=[t("java.lang.Exception")], param="e")],
            ),
            Throw(t(IO)),
        ]
        method = make_method(["java.lang.Exception"], body=body)

        verdict = check.analyze(method)

        assert isinstance(verdict, Finding)
        assert names(verdict.target) == [IO]

    def test_already_specific(self, check):
        assert check.analyze(make_method([IO], body=[Throw(t(IO))])) == NoFinding(SkipReason.NOT_BROAD)

    def test_test_code(self, check):
        method = make_method(["java.lang.Exception"], body=[Throw(t(IO))], is_test=True)

        assert check.analyze(method) == NoFinding(SkipReason.TEST_CODE)

    def test_trace_keeps_intermediate_sets(self, check):
        body = [
            Throw(t("java.lang.IllegalStateException")),
            Throw(t("java.io.FileNotFoundException")),
            Throw(t(IO)),
        ]
        trace = check.trace(make_method(["java.lang.Exception"], body=body))

        assert len(trace.collected) == 3
        assert names(trace.checked) == ["java.io.FileNotFoundException", IO]
        assert names(trace.normalized) == [IO]
        assert isinstance(trace.verdict, Finding)

    def test_trace_stops_at_gate(self, check):
        trace = check.trace(make_method([], body=[Throw(t(IO))]))

        assert trace.verdict == NoFinding(SkipReason.NOT_SINGLE_THROWS)
        assert trace.collected == []


class TestProperties:
    @pytest.mark.parametrize(
        "modifiers,overrides",
        [
            ((Modifier.PUBLIC,), False),
            ((Modifier.ABSTRACT,), False),
            ((Modifier.PUBLIC, Modifier.FINAL), False),
            ((Modifier.PRIVATE,), True),
        ],
    )
    def test_monotonic_eligibility(self, check, modifiers, overrides):
        """Public, abstract and overriding methods never produce a finding."""
        for body in ([], [Throw(t(IO))], [Throw(t("java.lang.IllegalStateException"))]):
            method = make_method(["java.lang.Exception"], modifiers, body=body, overrides=overrides)
            assert isinstance(check.analyze(method), NoFinding)

    def test_cardinality_bound(self, check):
        pool = [IO, SQL, "java.lang.InterruptedException", "java.util.concurrent.TimeoutException"]
        for size in range(len(pool) + 1):
            body = [Throw(t(name)) for name in pool[:size]]
            verdict = check.analyze(make_method(["java.lang.Exception"], body=body))
            if isinstance(verdict, Finding):
                assert len(verdict.target) <= MAX_CHECKED_EXCEPTIONS
            else:
                assert size > MAX_CHECKED_EXCEPTIONS

    def test_idempotent_after_fix(self, check):
        method = make_method(["java.lang.Exception"], body=[Throw(t(IO)), Throw(t(SQL))])
        verdict = check.analyze(method)
        assert isinstance(verdict, Finding)

        method.throws = [ThrowsEntry(name=x.simple_name, type=x) for x in verdict.target]

        assert isinstance(check.analyze(method), NoFinding)

    def test_idempotent_after_delete(self, check):
        method = make_method(["java.lang.Exception"], body=[])
        assert isinstance(check.analyze(method), Finding)

        method.throws = []

        assert check.analyze(method) == NoFinding(SkipReason.NOT_SINGLE_THROWS)


class TestDescribe:
    def test_describe_replace(self, check, hierarchy):
        method = make_method(["java.lang.Exception"], body=[Throw(t(IO)), Throw(t(SQL))])

        message = describe(check.analyze(method), hierarchy)

        assert message == "Method declares 'throws Exception' but only throws IOException, SQLException"

    def test_describe_delete(self, check, hierarchy):
        method = make_method(["java.lang.Throwable"], body=[])

        message = describe(check.analyze(method), hierarchy)

        assert message == "Method declares 'throws Throwable' but throws no checked exceptions"
