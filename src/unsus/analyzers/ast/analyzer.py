# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""AST behavioral analyzer: execution, network, env and filesystem patterns."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from unsus.analyzers.ast.env import classify_env
from unsus.analyzers.ast.escapes import scan_escape_chains
from unsus.analyzers.base import AnalyzerOutput, BaseAnalyzer, skip_minified_duplicates
from unsus.analyzers.javascript import (
    JavaScriptSyntaxError,
    identifier_name,
    is_identifier,
    is_literal,
    is_member,
    iter_nodes,
    node_line,
    parse_source,
    property_name,
    required_module,
    snippet,
    string_value,
)
from unsus.core.constants import AnalyzerName, FindingType, Severity
from unsus.models.finding import Finding
from unsus.models.package import PackageFiles, SourceFile

logger = logging.getLogger("unsus.analyzers.ast")

CHILD_PROCESS = "child_process"
CP_METHODS = frozenset(
    {"exec", "execSync", "spawn", "spawnSync", "fork", "execFile", "execFileSync"}
)
# Distinctive enough to flag without tracing where they came from.
ALWAYS_EXEC = frozenset({"execSync", "spawnSync", "execFile", "execFileSync"})

HTTP_MODULES = frozenset({"http", "https", "http2", "net", "tls", "dgram"})
NET_METHODS = frozenset({"request", "get", "connect", "createConnection", "createSocket"})
HTTP_CLIENTS = frozenset(
    {"axios", "got", "needle", "superagent", "request", "node-fetch", "undici"}
)
HTTP_CLIENT_GLOBALS = frozenset({"axios", "got", "needle", "superagent"})

VM_METHODS = frozenset(
    {"runInNewContext", "runInThisContext", "runInContext", "compileFunction"}
)

FS_MODULES = frozenset({"fs", "fs/promises", "fs-extra", "graceful-fs"})
FS_READ = frozenset(
    {
        "readFile",
        "readFileSync",
        "readdir",
        "readdirSync",
        "existsSync",
        "exists",
        "stat",
        "statSync",
        "createReadStream",
        "access",
        "accessSync",
    }
)
FS_WRITE = frozenset(
    {
        "writeFile",
        "writeFileSync",
        "appendFile",
        "appendFileSync",
        "createWriteStream",
        "unlink",
        "unlinkSync",
        "rm",
        "rmSync",
        "rmdir",
        "rmdirSync",
        "rename",
        "renameSync",
        "chmod",
        "chmodSync",
        "copyFile",
        "copyFileSync",
        "mkdir",
        "mkdirSync",
        "symlink",
        "symlinkSync",
        "truncate",
        "truncateSync",
    }
)


@dataclass
class Bindings:
    """Names bound to module imports within one file.

    ``modules`` maps a local name to the module it holds; ``members`` maps a
    destructured local name to ``(module, exported name)``.
    """

    modules: dict[str, str] = field(default_factory=dict)
    members: dict[str, tuple[str, str]] = field(default_factory=dict)

    def module_of(self, name: str | None) -> str | None:
        if name is None:
            return None
        return self.modules.get(name)

    def bind_pattern(self, pattern: Any, module: str) -> None:
        pattern_type = getattr(pattern, "type", None)
        if pattern_type == "Identifier":
            self.modules[pattern.name] = module
        elif pattern_type == "ObjectPattern":
            for prop in pattern.properties:
                if getattr(prop, "type", None) != "Property":
                    continue
                exported = identifier_name(prop.key) or string_value(prop.key)
                local = prop.value
                if getattr(local, "type", None) == "AssignmentPattern":
                    local = local.left
                if exported and is_identifier(local):
                    self.members[local.name] = (module, exported)


def collect_bindings(nodes: list[Any]) -> Bindings:
    """Trace ``require``/``import`` results to the local names holding them."""
    bindings = Bindings()
    for node in nodes:
        node_type = node.type
        if node_type == "VariableDeclarator":
            module = required_module(node.init)
            if module is not None:
                bindings.bind_pattern(node.id, module)
            elif getattr(node.init, "type", None) == "MemberExpression" and is_identifier(node.id):
                module = required_module(node.init.object)
                exported = property_name(node.init)
                if module is not None and exported:
                    bindings.members[node.id.name] = (module, exported)
        elif node_type == "AssignmentExpression" and is_identifier(node.left):
            module = required_module(node.right)
            if module is not None:
                bindings.modules[node.left.name] = module
        elif node_type == "ImportDeclaration":
            module = (string_value(node.source) or "").removeprefix("node:")
            for spec in node.specifiers:
                if spec.type in ("ImportDefaultSpecifier", "ImportNamespaceSpecifier"):
                    bindings.modules[spec.local.name] = module
                elif spec.type == "ImportSpecifier":
                    exported = identifier_name(spec.imported) or string_value(spec.imported)
                    if exported:
                        bindings.members[spec.local.name] = (module, exported)
    return bindings


class _FileVisitor:
    """Single pass over one parsed file."""

    def __init__(self, path: str, source: str, bindings: Bindings) -> None:
        self.path = path
        self.source = source
        self.bindings = bindings
        self.findings: list[Finding] = []
        self._named_env_lines: set[int] = set()
        self._bare_env_lines: list[tuple[int, str]] = []

    def add(self, node: Any, ftype: FindingType, severity: Severity, message: str) -> None:
        self.findings.append(
            Finding(
                type=ftype,
                severity=severity,
                message=message,
                file=self.path,
                line=node_line(node),
                code=snippet(self.source, node),
            )
        )

    def visit(self, nodes: list[Any]) -> list[Finding]:
        env_objects = {
            id(n.object)
            for n in nodes
            if n.type == "MemberExpression" and is_member(n.object, "process", "env")
        }
        for node in nodes:
            if node.type == "CallExpression":
                self.visit_call(node)
            elif node.type == "NewExpression":
                self.visit_new(node)
            elif node.type == "MemberExpression":
                self.visit_member(node, env_objects)

        for line, code in self._bare_env_lines:
            if line in self._named_env_lines:
                continue
            self._named_env_lines.add(line)
            self.findings.append(
                Finding(
                    type=FindingType.ENV_ACCESS,
                    severity=Severity.WARNING,
                    message="Whole process.env object accessed",
                    file=self.path,
                    line=line,
                    code=code,
                )
            )
        return self.findings

    # -- calls -------------------------------------------------------------

    def visit_call(self, node: Any) -> None:
        callee = node.callee
        if callee.type == "Identifier":
            self.visit_identifier_call(node, callee.name)
        elif callee.type == "MemberExpression":
            self.visit_method_call(node, callee)

    def visit_identifier_call(self, node: Any, name: str) -> None:
        args = node.arguments
        if name == "eval":
            self.add(node, FindingType.EVAL, Severity.CRITICAL, "eval() call")
        elif name == "Function":
            self.function_constructor(node, "Function()")
        elif name == "require" and args:
            self.require_call(node)
        elif name == "fetch":
            url = string_value(args[0]) if args else None
            if url is not None:
                self.add(node, FindingType.NETWORK, Severity.WARNING, f"fetch() to {url}")
            else:
                self.add(node, FindingType.NETWORK, Severity.DANGER, "fetch() with computed URL")
        elif name == "atob":
            self.add(node, FindingType.BASE64_DECODE, Severity.DANGER, "atob() base64 decode")
        elif name in ALWAYS_EXEC:
            self.add(node, FindingType.EXEC, Severity.CRITICAL, f"{name}() shell exec")
        elif name in self.bindings.members:
            self.imported_call(node, name, *self.bindings.members[name])
        elif self.is_module(name, HTTP_CLIENTS, HTTP_CLIENT_GLOBALS):
            self.add(node, FindingType.NETWORK, Severity.WARNING, f"{name}() HTTP client call")

    def imported_call(self, node: Any, local: str, module: str, exported: str) -> None:
        if module == CHILD_PROCESS and exported in CP_METHODS:
            self.add(
                node, FindingType.EXEC, Severity.CRITICAL, f"{local}() from child_process"
            )
        elif module in HTTP_MODULES and exported in NET_METHODS:
            self.add(node, FindingType.NETWORK, Severity.DANGER, f"{module}.{exported}()")
        elif module in HTTP_CLIENTS:
            self.add(node, FindingType.NETWORK, Severity.WARNING, f"{module}.{exported}()")
        elif module == "vm" and exported in VM_METHODS:
            self.add(node, FindingType.VM_EXEC, Severity.CRITICAL, f"vm.{exported}()")
        elif module in FS_MODULES:
            self.fs_call(node, exported)

    def require_call(self, node: Any) -> None:
        arg = node.arguments[0]
        module = string_value(arg)
        if module is None:
            self.add(
                node,
                FindingType.DYNAMIC_REQUIRE,
                Severity.DANGER,
                "Dynamic require() with computed argument",
            )
            return
        module = module.removeprefix("node:")
        if module == CHILD_PROCESS:
            self.add(node, FindingType.EXEC, Severity.CRITICAL, "require('child_process')")
        elif module == "vm":
            self.add(node, FindingType.VM_EXEC, Severity.CRITICAL, "require('vm')")

    def function_constructor(self, node: Any, label: str) -> None:
        if all(is_literal(arg) for arg in node.arguments):
            severity, body = Severity.WARNING, "literal"
        else:
            severity, body = Severity.CRITICAL, "computed"
        self.add(node, FindingType.EVAL, severity, f"{label} constructor with {body} body")

    def visit_method_call(self, node: Any, callee: Any) -> None:
        obj = callee.object
        method = property_name(callee)
        receiver = identifier_name(obj)
        receiver_module = self.bindings.module_of(receiver)

        if method is None:
            hidden = callee.property.type not in ("Identifier", "Literal")
            if callee.computed and hidden and node.arguments:
                self.add(
                    node,
                    FindingType.DYNAMIC_EXEC,
                    Severity.WARNING,
                    "Call through computed method name",
                )
            return

        if receiver == "Buffer" and method == "from":
            args = node.arguments
            if len(args) > 1 and string_value(args[1]) == "base64":
                self.add(
                    node, FindingType.BASE64_DECODE, Severity.DANGER, "Buffer.from(x, 'base64')"
                )
        elif receiver == "String" and method == "fromCharCode":
            self.add(
                node, FindingType.STRING_CONSTRUCTION, Severity.WARNING, "String.fromCharCode()"
            )
        elif method in CP_METHODS and self.is_child_process(obj):
            message = f"child_process.{method}() shell exec"
            self.add(node, FindingType.EXEC, Severity.CRITICAL, message)
        elif method in VM_METHODS:
            self.add(node, FindingType.VM_EXEC, Severity.CRITICAL, f"vm.{method}()")
        elif method in NET_METHODS and self.is_module(receiver, HTTP_MODULES, HTTP_MODULES):
            self.add(node, FindingType.NETWORK, Severity.DANGER, f"{receiver}.{method}()")
        elif self.is_module(receiver, HTTP_CLIENTS, HTTP_CLIENT_GLOBALS):
            message = f"{receiver}.{method}() HTTP client call"
            self.add(node, FindingType.NETWORK, Severity.WARNING, message)
        elif receiver == "fs" or receiver_module in FS_MODULES:
            self.fs_call(node, method)
        elif method == "resolvedOptions":
            message = "Locale/timezone lookup via resolvedOptions()"
            self.add(node, FindingType.GEO_TRIGGER, Severity.WARNING, message)

    def is_module(
        self, name: str | None, modules: frozenset[str], globals_: frozenset[str]
    ) -> bool:
        """``name`` is bound to one of ``modules``, or is an unbound well-known global."""
        module = self.bindings.module_of(name)
        if module is not None:
            return module in modules
        return name in globals_

    def is_child_process(self, obj: Any) -> bool:
        if required_module(obj) == CHILD_PROCESS:
            return True
        return self.bindings.module_of(identifier_name(obj)) == CHILD_PROCESS

    def fs_call(self, node: Any, method: str) -> None:
        if method in FS_WRITE:
            self.add(node, FindingType.FS_WRITE, Severity.WARNING, f"fs.{method}() modifies files")
        elif method in FS_READ:
            self.add(node, FindingType.FS_ACCESS, Severity.WARNING, f"fs.{method}() reads files")

    def visit_new(self, node: Any) -> None:
        callee = node.callee
        if is_identifier(callee, "Function"):
            self.function_constructor(node, "new Function()")
        elif callee.type == "MemberExpression" and property_name(callee) == "Script":
            if self.bindings.module_of(identifier_name(callee.object)) == "vm" or is_identifier(
                callee.object, "vm"
            ):
                self.add(node, FindingType.VM_EXEC, Severity.CRITICAL, "new vm.Script()")

    # -- member access -----------------------------------------------------

    def visit_member(self, node: Any, env_objects: set[int]) -> None:
        if is_member(node.object, "process", "env"):
            self.env_access(node)
        elif is_member(node, "process", "env") and id(node) not in env_objects:
            self._bare_env_lines.append((node_line(node), snippet(self.source, node)))
        elif is_identifier(node.object, "navigator") and property_name(node) in (
            "language",
            "languages",
        ):
            self.add(
                node,
                FindingType.GEO_TRIGGER,
                Severity.WARNING,
                f"Locale lookup via navigator.{property_name(node)}",
            )

    def env_access(self, node: Any) -> None:
        name = property_name(node)
        self._named_env_lines.add(node_line(node))
        if name is None:
            message = "process.env[<computed>] access"
            self.add(node, FindingType.ENV_ACCESS, Severity.WARNING, message)
            return
        ftype, severity = classify_env(name)
        sensitive = ftype == FindingType.ENV_ACCESS_SENSITIVE
        label = "sensitive environment variable" if sensitive else "environment variable"
        self.add(node, ftype, severity, f"Reads {label} {name}")


def analyze_source(path: str, source: str) -> list[Finding]:
    """All AST and escape-chain findings for one source file."""
    findings = scan_escape_chains(path, source)
    try:
        program = parse_source(source)
    except JavaScriptSyntaxError as exc:
        logger.debug("Parse failed for %s: %s", path, exc)
        findings.append(
            Finding(
                type=FindingType.PARSE_ERROR,
                severity=Severity.INFO,
                message=f"Failed to parse {path}: {exc}",
                file=path,
                line=0,
            )
        )
        return findings

    nodes = list(iter_nodes(program))
    bindings = collect_bindings(nodes)
    findings.extend(_FileVisitor(path, source, bindings).visit(nodes))
    return findings


class AstAnalyzer(BaseAnalyzer):
    """Behavioral inspection of JavaScript sources."""

    @property
    def name(self) -> str:
        return AnalyzerName.AST

    def run(self, package: PackageFiles) -> AnalyzerOutput:
        files: list[SourceFile] = skip_minified_duplicates(package.source_files)
        findings: list[Finding] = []
        for f in files:
            findings.extend(analyze_source(f.path, f.content))
        logger.info("AST analyzer found %d findings in %d files", len(findings), len(files))
        return AnalyzerOutput(findings=findings)
