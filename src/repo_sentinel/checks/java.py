"""
repo-sentinel — Java checks

File: src/repo_sentinel/checks/java.py
Last updated: 2026-10-19

Purpose
- Project, build and test gates (critical) for Maven and Gradle projects, plus
  format, lint, coverage and dependency-scanning checks (non-critical).

Tool selection
- ``languages.java.build_tool`` pins ``maven`` or ``gradle``; ``auto`` prefers a
  Gradle build file, then ``pom.xml``, then whichever wrapper script exists.
- A wrapper script (``mvnw``/``gradlew``) in the project is preferred over the
  tool on PATH. Without either, the build and test gates report INFO.
- JaCoCo XML reports are read from the usual Maven and Gradle output paths;
  the LINE counter is preferred over INSTRUCTION.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

from repo_sentinel.checks.base import CommandCheck, first_existing, read_text
from repo_sentinel.constants import DEFAULT_COVERAGE_THRESHOLD, ECOSYSTEM_JAVA
from repo_sentinel.engine.execution import CommandResult
from repo_sentinel.engine.verdicts import CheckContext, Registration, Verdict, truncate_message

AUTO: Final[str] = "auto"
MAVEN: Final[str] = "maven"
GRADLE: Final[str] = "gradle"

BUILD_FILES: Final[tuple[str, ...]] = ("pom.xml", "build.gradle", "build.gradle.kts")
JACOCO_REPORTS: Final[tuple[str, ...]] = (
    "target/site/jacoco/jacoco.xml",
    "target/jacoco.xml",
    "build/reports/jacoco/test/jacocoTestReport.xml",
    "build/jacoco/test.xml",
    "target/site/jacoco-aggregate/jacoco.xml",
    "build/reports/jacoco/jacocoAggregatedReport.xml",
)

_SUREFIRE_RE: Final[re.Pattern[str]] = re.compile(
    r"Tests run: (\d+), Failures: (\d+), Errors: (\d+), Skipped: (\d+)"
)
_GRADLE_TESTS_RE: Final[re.Pattern[str]] = re.compile(r"(\d+) tests? completed")

_WRAPPERS: Final[Mapping[str, tuple[str, str]]] = {
    MAVEN: ("mvnw", "mvn"),
    GRADLE: ("gradlew", "gradle"),
}


def detect_build_tool(root: Path) -> str | None:
    if first_existing(root, ("build.gradle", "build.gradle.kts")):
        return GRADLE
    if (root / "pom.xml").exists():
        return MAVEN
    if (root / "gradlew").exists():
        return GRADLE
    if (root / "mvnw").exists():
        return MAVEN
    return None


def build_files_text(root: Path) -> str:
    """Lower-cased contents of every Maven/Gradle build file present."""
    return "\n".join((read_text(root, name) or "").lower() for name in BUILD_FILES)


class JavaCommandCheck(CommandCheck):
    """Shared Maven/Gradle resolution for the build and test gates."""

    ecosystem = ECOSYSTEM_JAVA

    def build_tool(self, context: CheckContext, root: Path) -> str | None:
        configured = str(context.setting("languages", "java", "build_tool", default=AUTO))
        configured = configured.strip().lower() or AUTO
        if configured != AUTO:
            return configured
        return detect_build_tool(root)

    def launcher(self, context: CheckContext, root: Path, build_tool: str) -> str | None:
        """``./mvnw``/``./gradlew`` when present, else the tool on PATH, else None."""
        wrapper, tool = _WRAPPERS[build_tool]
        if (root / wrapper).is_file():
            return f"./{wrapper}"
        if self.tool_missing(context, tool):
            return None
        return tool

    async def run_build_tool(
        self, context: CheckContext, root: Path, build_tool: str, *args: str
    ) -> CommandResult | Verdict:
        launcher = self.launcher(context, root, build_tool)
        if launcher is None:
            return self.not_installed(_WRAPPERS[build_tool][1])
        result = await self.run_tool(context, launcher, *args, cwd=root)
        skipped = self.not_started(result)
        if skipped is not None:
            return skipped
        return result


class JavaProjectCheck(CommandCheck):
    check_id = "java:project"
    name = "Java Project"
    ecosystem = ECOSYSTEM_JAVA
    order = 100
    critical = True
    description = "Verifies that pom.xml or build.gradle exists for proper project configuration."
    suggestion = "Ensure pom.xml or build.gradle exists"

    def run(self, context: CheckContext) -> Verdict:
        root = context.source_path(ECOSYSTEM_JAVA)
        build_tool = detect_build_tool(root)
        if build_tool == MAVEN:
            message = "Maven project (pom.xml)"
            if (root / "mvnw").exists():
                message += " with wrapper"
            return self.verdicts.passed(message)
        if build_tool == GRADLE:
            dsl = "Kotlin DSL" if (root / "build.gradle.kts").exists() else "Groovy DSL"
            message = f"Gradle project ({dsl})"
            if (root / "gradlew").exists():
                message += " with wrapper"
            return self.verdicts.passed(message)
        return self.verdicts.fail("No Java project file found (pom.xml or build.gradle)")


class JavaBuildCheck(JavaCommandCheck):
    check_id = "java:build"
    name = "Java Build"
    order = 110
    critical = True
    description = "Compiles the project with Maven or Gradle."
    suggestion = "Fix build errors before continuing"

    async def run(self, context: CheckContext) -> Verdict:
        root = context.source_path(ECOSYSTEM_JAVA)
        build_tool = self.build_tool(context, root)
        if build_tool is None:
            return self.verdicts.fail("No build tool detected (pom.xml or build.gradle)")

        if build_tool == MAVEN:
            args: tuple[str, ...] = ("compile", "-q", "-DskipTests")
        else:
            args = ("compileJava", "-q", "--no-daemon")
        result = await self.run_build_tool(context, root, build_tool, *args)
        if isinstance(result, Verdict):
            return result
        if result.is_success():
            return self.verdicts.passed(f"Build successful ({build_tool})")
        detail = result.stderr.strip() or result.stdout.strip()
        if detail:
            return self.verdicts.fail("Build failed: " + truncate_message(detail))
        return self.verdicts.fail("Build failed")


class JavaTestsCheck(JavaCommandCheck):
    check_id = "java:tests"
    name = "Java Tests"
    order = 120
    critical = True
    description = "Runs the test suite with Maven or Gradle."
    suggestion = "Fix failing tests before continuing"

    async def run(self, context: CheckContext) -> Verdict:
        root = context.source_path(ECOSYSTEM_JAVA)
        build_tool = self.build_tool(context, root)
        if build_tool is None:
            return self.verdicts.fail("No build tool detected")

        args = ("test", "-q") if build_tool == MAVEN else ("test", "--no-daemon")
        result = await self.run_build_tool(context, root, build_tool, *args)
        if isinstance(result, Verdict):
            return result
        summary = summarize_java_tests(result.output, build_tool)
        if not result.is_success():
            return self.verdicts.fail(f"Tests failed: {summary}" if summary else "Tests failed")
        return self.verdicts.passed(summary or "All tests passed")


class JavaFormatCheck(CommandCheck):
    check_id = "java:format"
    name = "Java Format"
    ecosystem = ECOSYSTEM_JAVA
    order = 200
    description = "Looks for a code formatter configuration (Spotless, google-java-format, IDE)."
    suggestion = "Configure Spotless or google-java-format"

    def run(self, context: CheckContext) -> Verdict:
        root = context.source_path(ECOSYSTEM_JAVA)
        build = build_files_text(root)
        formatters: list[str] = []
        if "google-java-format" in build:
            formatters.append("google-java-format")
        if "spotless" in build:
            formatters.append("Spotless")
        if "*.java" in (read_text(root, ".editorconfig") or ""):
            formatters.append("EditorConfig")
        if _has_intellij_code_style(root):
            formatters.append("IntelliJ")
        if first_existing(root, (".settings", "eclipse-formatter.xml")):
            formatters.append("Eclipse")

        if formatters:
            return self.verdicts.passed("Formatting configured: " + ", ".join(formatters))
        return self.verdicts.warn(
            "No formatter configuration found (consider Spotless or google-java-format)"
        )


class JavaLintCheck(CommandCheck):
    check_id = "java:lint"
    name = "Java Lint"
    ecosystem = ECOSYSTEM_JAVA
    order = 210
    description = "Looks for static analysis (Checkstyle, SpotBugs, PMD, Error Prone, Sonar)."
    suggestion = "Configure Checkstyle, SpotBugs or PMD"

    _CONFIG_FILES: Final[tuple[tuple[str, tuple[str, ...], tuple[str, ...]], ...]] = (
        (
            "Checkstyle",
            ("checkstyle.xml", "config/checkstyle/checkstyle.xml", "checkstyle/checkstyle.xml"),
            ("checkstyle",),
        ),
        (
            "SpotBugs",
            (
                "spotbugs.xml",
                "spotbugs-exclude.xml",
                "findbugs-exclude.xml",
                "config/spotbugs/exclude.xml",
            ),
            ("spotbugs", "findbugs"),
        ),
        (
            "PMD",
            ("pmd.xml", "ruleset.xml", "pmd-ruleset.xml", "config/pmd/ruleset.xml"),
            ("pmd",),
        ),
        ("Error Prone", (), ("error-prone", "errorprone")),
        ("SonarQube", ("sonar-project.properties",), ("sonar",)),
    )

    def run(self, context: CheckContext) -> Verdict:
        root = context.source_path(ECOSYSTEM_JAVA)
        build = build_files_text(root)
        linters = [
            label
            for label, files, plugins in self._CONFIG_FILES
            if first_existing(root, files) or any(plugin in build for plugin in plugins)
        ]
        if linters:
            return self.verdicts.passed("Static analysis configured: " + ", ".join(linters))
        return self.verdicts.warn(
            "No static analysis tools configured (consider Checkstyle, SpotBugs, or PMD)"
        )


class JavaCoverageCheck(CommandCheck):
    check_id = "java:coverage"
    name = "Java Coverage"
    ecosystem = ECOSYSTEM_JAVA
    order = 220
    description = "Reads the JaCoCo XML report and compares coverage to the threshold."
    suggestion = "Add more tests to improve coverage"

    def __init__(self, threshold: float = DEFAULT_COVERAGE_THRESHOLD) -> None:
        self.threshold = threshold

    def run(self, context: CheckContext) -> Verdict:
        root = context.source_path(ECOSYSTEM_JAVA)
        if "jacoco" not in build_files_text(root):
            return self.verdicts.warn(
                "JaCoCo not configured (add jacoco plugin to enable coverage)"
            )
        coverage = find_jacoco_coverage(root)
        if coverage is None:
            return self.verdicts.warn(
                "JaCoCo configured but no coverage report found (run tests first)"
            )
        if coverage < self.threshold:
            return self.verdicts.warn(
                f"Coverage {coverage:.1f}% is below threshold {self.threshold:.1f}%"
            )
        return self.verdicts.passed(f"Coverage: {coverage:.1f}%")


class JavaDepsCheck(CommandCheck):
    check_id = "java:deps"
    name = "Java Dependencies"
    ecosystem = ECOSYSTEM_JAVA
    order = 230
    description = "Looks for dependency vulnerability scanning or update automation."
    suggestion = "Add OWASP Dependency-Check, Snyk, Dependabot or Renovate"

    def run(self, context: CheckContext) -> Verdict:
        root = context.source_path(ECOSYSTEM_JAVA)
        pom = (read_text(root, "pom.xml") or "").lower()
        build = build_files_text(root)
        tools: list[str] = []
        if "dependency-check" in build:
            tools.append("OWASP Dependency-Check")
        if (root / ".snyk").exists() or "snyk" in pom:
            tools.append("Snyk")
        if first_existing(context.path, (".github/dependabot.yml", ".github/dependabot.yaml")):
            tools.append("Dependabot")
        renovate = ("renovate.json", "renovate.json5", ".renovaterc", ".renovaterc.json")
        if first_existing(context.path, renovate):
            tools.append("Renovate")
        if "maven-dependency-plugin" in pom:
            tools.append("Maven Dependency Plugin")
        verification = ("gradle/verification-metadata.xml", "gradle/dependency-verification.xml")
        if first_existing(root, verification):
            tools.append("Gradle Dependency Verification")

        if tools:
            return self.verdicts.passed("Dependency scanning configured: " + ", ".join(tools))
        return self.verdicts.warn(
            "No dependency scanning configured (consider OWASP Dependency-Check or Snyk)"
        )


def summarize_java_tests(output: str, build_tool: str) -> str | None:
    """Surefire totals across modules for Maven, the completion line for Gradle."""

    if build_tool == MAVEN:
        runs = [tuple(int(part) for part in match) for match in _SUREFIRE_RE.findall(output)]
        if not runs:
            return None
        total, failures, errors = (sum(run[index] for run in runs) for index in range(3))
        if failures or errors:
            return f"{total} tests, {failures} failures, {errors} errors"
        return f"{total} tests passed"
    completed = _GRADLE_TESTS_RE.search(output)
    if completed is not None:
        return f"{completed.group(1)} tests completed"
    return None


def find_jacoco_coverage(root: Path) -> float | None:
    for relative in JACOCO_REPORTS:
        report = root / relative
        if not report.is_file():
            continue
        coverage = parse_jacoco_report(report.read_text(encoding="utf-8", errors="replace"))
        if coverage is not None:
            return coverage
    return None


def parse_jacoco_report(text: str) -> float | None:
    """Percentage from the report-level LINE (else INSTRUCTION) counter."""

    try:
        report = ET.fromstring(text)
    except ET.ParseError:
        return None
    counters = {counter.get("type"): counter for counter in report.findall("counter")}
    for kind in ("LINE", "INSTRUCTION"):
        counter = counters.get(kind)
        if counter is None:
            continue
        try:
            missed = int(counter.get("missed", "0"))
            covered = int(counter.get("covered", "0"))
        except ValueError:
            continue
        if missed + covered > 0:
            return covered / (missed + covered) * 100
    return None


def _has_intellij_code_style(root: Path) -> bool:
    styles = root / ".idea" / "codeStyles"
    if styles.is_dir() and any(styles.iterdir()):
        return True
    return (root / ".idea" / "codeStyleSettings.xml").is_file()


def register(config: Mapping[str, Any]) -> list[Registration]:
    threshold = float(config.get("coverage", {}).get("threshold", DEFAULT_COVERAGE_THRESHOLD))
    checks = [
        JavaProjectCheck(),
        JavaBuildCheck(),
        JavaTestsCheck(),
        JavaFormatCheck(),
        JavaLintCheck(),
        JavaCoverageCheck(threshold=threshold),
        JavaDepsCheck(),
    ]
    return [check.registration() for check in checks]


__all__ = [
    "JavaBuildCheck",
    "JavaCoverageCheck",
    "JavaDepsCheck",
    "JavaFormatCheck",
    "JavaLintCheck",
    "JavaProjectCheck",
    "JavaTestsCheck",
    "detect_build_tool",
    "find_jacoco_coverage",
    "parse_jacoco_report",
    "register",
    "summarize_java_tests",
]
