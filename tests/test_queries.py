"""Tests for the query layer over the shop fixture."""

import logging

from conftest import link, make_method

from throwspec import queries
from throwspec.analyzer import Finding, NoFinding, ThrowSpecificityCheck
from throwspec.config import ThrowspecConfig
from throwspec.enums import FixKind, SkipReason
from throwspec.loader import load_program
from throwspec.models import ClassDef, ProgramModel
from throwspec.stubs import load_stubs


def reports_by_name(result):
    return {r.method.qualified_name: r for r in result.reports}


class TestCheckProgram:
    def test_findings(self, shop_model):
        result = queries.check_program(shop_model)
        findings = {r.method.qualified_name: r for r in result.findings}

        assert sorted(findings) == [
            "com.example.shop.Loader.commit",
            "com.example.shop.Loader.parse",
            "com.example.shop.Loader.pause",
            "com.example.shop.Loader.read",
            "com.example.shop.PrintTask.relay",
            "com.example.shop.PrintTask.retry",
            "com.example.shop.PrintTask.submit",
        ]

    def test_targets(self, shop_model):
        reports = reports_by_name(queries.check_program(shop_model))

        def target(name):
            verdict = reports[f"com.example.shop.{name}"].verdict
            assert isinstance(verdict, Finding)
            return [t.qualified_name for t in verdict.target]

        assert target("Loader.read") == ["java.io.IOException"]
        assert target("Loader.pause") == ["java.lang.InterruptedException"]
        assert target("Loader.parse") == []
        assert target("Loader.commit") == ["java.sql.SQLException"]
        assert target("PrintTask.submit") == []
        assert target("PrintTask.retry") == ["java.sql.SQLException"]
        assert target("PrintTask.relay") == ["java.lang.InterruptedException", "java.io.IOException"]

    def test_skip_reasons(self, shop_model):
        reports = reports_by_name(queries.check_program(shop_model))

        def reason(name):
            verdict = reports[f"com.example.shop.{name}"].verdict
            assert isinstance(verdict, NoFinding)
            return verdict.reason

        assert reason("Loader.both") == SkipReason.BROAD_EXCEPTION_THROWN
        assert reason("Loader.open") == SkipReason.UNSAFE_TO_MODIFY
        assert reason("Task.run") == SkipReason.UNSAFE_TO_MODIFY
        assert reason("PrintTask.run") == SkipReason.OVERRIDES_SUPERTYPE
        assert reason("PrintTask.helper") == SkipReason.NOT_SINGLE_THROWS
        assert reason("PrintTask.specific") == SkipReason.NOT_BROAD
        assert reason("PrintTask.everything") == SkipReason.TOO_MANY_EXCEPTIONS
        assert reason("LoaderTest.sleepBriefly") == SkipReason.TEST_CODE

    def test_edits_and_messages(self, shop_model):
        reports = reports_by_name(queries.check_program(shop_model))

        commit = reports["com.example.shop.Loader.commit"]
        assert commit.edit.kind == FixKind.REPLACE
        assert commit.edit.replacement == "SQLException"
        assert commit.edit.imports == ["java.sql.SQLException"]
        assert commit.message == "Method declares 'throws Exception' but only throws SQLException"

        parse = reports["com.example.shop.Loader.parse"]
        assert parse.edit.kind == FixKind.DELETE
        assert parse.edit.span is not None

    def test_excluded_methods(self, shop_model):
        config = ThrowspecConfig(exclude=["*.Loader.*"])

        result = queries.check_program(shop_model, config)
        loader_reports = [r for r in result.reports if r.method.owner == "com.example.shop.Loader"]

        assert loader_reports
        assert all(r.verdict == NoFinding(SkipReason.EXCLUDED) for r in loader_reports)

    def test_excluded_by_unit_path(self, shop_model):
        config = ThrowspecConfig(exclude=["*/Tasks.yaml"])

        result = queries.check_program(shop_model, config)

        assert {r.method.owner for r in result.findings} == {"com.example.shop.Loader"}

    def test_same_package_class_forces_qualified_name(self):
        model = link(
            {
                "package": "com.acme",
                "classes": [
                    {"name": "InterruptedException", "extends": "Exception"},
                    {
                        "name": "Svc",
                        "modifiers": ["final"],
                        "methods": [
                            {
                                "name": "pause",
                                "modifiers": ["private"],
                                "throws": ["Exception"],
                                "body": [{"call": "Thread.sleep"}],
                            }
                        ],
                    },
                ],
            }
        )

        [report] = queries.check_program(model).findings

        assert [t.qualified_name for t in report.verdict.target] == ["java.lang.InterruptedException"]
        assert report.edit.replacement == "java.lang.InterruptedException"
        assert report.edit.imports == []

    def test_failing_method_is_isolated(self, caplog, monkeypatch):
        """An unexpected error in one method does not affect the others."""
        broken = make_method(["java.lang.Exception"])
        healthy = make_method(["java.lang.Exception"])
        healthy.name = "healthy"
        model = ProgramModel()
        model.classes["com.acme.Svc"] = ClassDef(name="com.acme.Svc", methods=[broken, healthy])

        original = ThrowSpecificityCheck.analyze

        def analyze(self, method):
            if method is broken:
                raise RuntimeError("boom")
            return original(self, method)

        monkeypatch.setattr(ThrowSpecificityCheck, "analyze", analyze)
        with caplog.at_level(logging.ERROR, logger="throwspec"):
            result = queries.check_program(model)

        verdicts = [r.verdict for r in result.reports]
        assert verdicts[0] == NoFinding(SkipReason.ANALYSIS_ERROR)
        assert isinstance(verdicts[1], Finding)
        assert "analysis of com.acme.Svc.work() failed" in caplog.text


class TestExplain:
    def test_explain_by_simple_name(self, shop_model):
        result = queries.explain_method(shop_model, "relay")

        [trace] = result.traces
        assert [t.qualified_name for t in trace.collected] == [
            "java.lang.InterruptedException",
            "java.io.IOException",
        ]
        assert isinstance(trace.verdict, Finding)

    def test_explain_by_suffix(self, shop_model):
        result = queries.explain_method(shop_model, "Task.run")

        assert [t.method.owner for t in result.traces] == ["com.example.shop.Task"]

    def test_explain_unknown_suggests(self, shop_model):
        result = queries.explain_method(shop_model, "com.example.shop.Loader.pase")

        assert result.traces == []
        assert "com.example.shop.Loader.parse" in result.suggestions


class TestExceptions:
    def test_lists_model_and_builtin_types(self, temp_project):
        (temp_project / "errors.yaml").write_text(
            "package: com.acme\nclasses:\n  - name: AppException\n    extends: Exception\n"
        )
        model = load_program(temp_project, stubs=load_stubs())

        result = queries.find_exceptions(model)
        by_name = {info.name: info for info in result.types}

        app = by_name["com.acme.AppException"]
        assert app.declared_in_model
        assert app.checked
        assert not app.broad
        assert app.supertypes == ["java.lang.Exception"]
        assert by_name["java.lang.Exception"].broad
        assert not by_name["java.lang.RuntimeException"].checked


class TestApplyFixes:
    def test_dry_run_leaves_sources(self, shop_copy):
        source = shop_copy / "src" / "main" / "java" / "com" / "example" / "shop" / "Loader.java"
        before = source.read_text()
        model = load_program(shop_copy, stubs=load_stubs())

        fix_result = queries.apply_fixes(queries.check_program(model), dry_run=True)

        assert source.read_text() == before
        assert list(fix_result.edits_by_file) == [str(source)]
        assert len(fix_result.edits_by_file[str(source)]) == 4

    def test_fixes_rewrite_sources(self, shop_copy):
        source = shop_copy / "src" / "main" / "java" / "com" / "example" / "shop" / "Loader.java"
        model = load_program(shop_copy, stubs=load_stubs())

        fix_result = queries.apply_fixes(queries.check_program(model))
        text = source.read_text()

        assert "private byte[] read(String path) throws IOException {" in text
        assert "static void pause(long millis) throws InterruptedException {" in text
        assert "private int parse(String text) {" in text
        assert "private void commit(java.sql.Connection connection) throws SQLException {" in text
        assert "import java.io.IOException;\nimport java.sql.SQLException;\n" in text
        assert "private void both(String path) throws Throwable {" in text
        assert "public void open(String path) throws Exception {" in text
        assert {r.method.name for r in fix_result.not_applicable} == {"submit", "retry", "relay"}

    def test_fix_is_idempotent(self, shop_copy):
        model = load_program(shop_copy, stubs=load_stubs())
        queries.apply_fixes(queries.check_program(model))

        source = shop_copy / "src" / "main" / "java" / "com" / "example" / "shop" / "Loader.java"
        after_first = source.read_text()
        model = load_program(shop_copy, stubs=load_stubs())
        queries.apply_fixes(queries.check_program(model))

        # Re-applying locates the rewritten clauses and writes the same text back.
        assert source.read_text() == after_first

    def test_missing_source_is_not_applicable(self, shop_copy):
        model = load_program(shop_copy, stubs=load_stubs())
        (shop_copy / "src" / "main" / "java" / "com" / "example" / "shop" / "Loader.java").unlink()

        fix_result = queries.apply_fixes(queries.check_program(model))

        assert fix_result.edits_by_file == {}
        assert len(fix_result.not_applicable) == 7


OVERLOADED_SOURCE = """package com.acme;

final class Svc {
    void run() {
        pause();
    }

    private void load(String path) throws Exception {
        Thread.sleep(1);
    }

    private void load(int count) throws Exception {
        Thread.sleep(count);
    }

    private void pause() throws Exception {
        Thread.sleep(5);
    }
}
"""

OVERLOADED_MODEL = """source: Svc.java
package: com.acme
classes:
  - name: Svc
    modifiers: [final]
    methods:
      - name: run
      - name: load
        modifiers: [private]
        params: [String]
        throws: [Exception]
        body:
          - call: Thread.sleep
      - name: load
        modifiers: [private]
        params: [int]
        throws: [Exception]
        body:
          - call: Thread.sleep
      - name: pause
        modifiers: [private]
        throws: [Exception]
        body:
          - call: Thread.sleep
"""


class TestApplyFixesWithoutLines:
    """Models without declaration lines: overloads and earlier call sites."""

    def _project(self, temp_project):
        (temp_project / "Svc.java").write_text(OVERLOADED_SOURCE)
        (temp_project / "Svc.yaml").write_text(OVERLOADED_MODEL)
        return load_program(temp_project, stubs=load_stubs())

    def test_overloads_get_no_span(self, temp_project):
        model = self._project(temp_project)

        loads = [m for m in model.methods if m.name == "load"]
        [pause] = [m for m in model.methods if m.name == "pause"]

        assert len(loads) == 2
        assert all(m.throws_span is None for m in loads)
        assert pause.throws_span is not None

    def test_unrelated_finding_still_applied(self, temp_project):
        model = self._project(temp_project)

        fix_result = queries.apply_fixes(queries.check_program(model))
        text = (temp_project / "Svc.java").read_text()

        assert "private void pause() throws InterruptedException {" in text
        assert "        pause();\n" in text
        assert text.count("throws Exception") == 2
        assert {r.method.name for r in fix_result.not_applicable} == {"load"}
