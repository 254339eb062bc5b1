"""
Command safety classifier.

Decides whether a command might leak the secrets injected into it and so
needs a human to confirm it first. The policy is an ordered tuple of rules;
the first rule that matches decides the verdict. Anything not explicitly
allowlisted is treated as suspicious.
"""

import re
from dataclasses import dataclass
from typing import Callable, Sequence, Tuple

REASON_DISPLAYS_ENV = "This command displays environment variables"
REASON_INLINE_CODE = "This command executes inline code which could access environment variables"
REASON_ENV_ACCESS = "This command may expose environment variables"
REASON_NOT_ALLOWLISTED = "This command is not in the allowlist and may access environment variables"

# Commands whose purpose is to print the environment
ENV_DUMP_COMMANDS = frozenset({
    "env",
    "printenv",
    "export",
    "set",
    "declare",
    "typeset",
    "compgen",
})

_INTERPRETERS = (
    r"node|nodejs|deno|bun|python[\d.]*|pypy[\d.]*|ruby|jruby|perl|php|lua|luajit"
    r"|rscript|julia|tclsh|wish|osascript|pwsh|powershell|groovy|scala|elixir|erl"
)
_SHELLS = r"sh|bash|zsh|dash|ksh|mksh|ash|fish|csh|tcsh|busybox"
_SCRIPT_RUNNERS = r"npm|pnpm|yarn|bun|deno|uv|poetry|pipenv|pdm|hatch|rye|bundle|composer"

# Patterns meaning "execute the following text as code". Launchers match at
# any token so nested forms like `find -exec sh -c` and `docker run img node -e` count.
INLINE_CODE_PATTERNS = tuple(re.compile(p, re.IGNORECASE) for p in (
    # node -e, python -c, perl -ne, php -r, ruby -rjson -e ...
    rf"(?:^|\s)(?:\S*[/\\])?(?:{_INTERPRETERS})(?:\.exe)?\s(?:.*\s)?-[a-z]*[ecrp]\b",
    # --eval, --exec=..., --command ...
    r"(?:^|\s)--(?:eval|exec|execute|run|print|command)(?:[=\s]|$)",
    # powershell -Command / -EncodedCommand
    r"(?:^|\s)-(?:command|encodedcommand)(?:\s|$)",
    # bash -c, sh -lc, zsh -x -c
    rf"(?:^|\s)(?:\S*[/\\])?(?:{_SHELLS})(?:\.exe)?(?:\s+(?:sh|-[a-z]+))*\s+-[a-z]*c\b",
    # cmd /c
    r"(?:^|\s)(?:\S*[/\\])?cmd(?:\.exe)?\s+/[ck]\b",
    # npm run, npm exec, yarn dlx, uv run, bundle exec ...
    rf"(?:^|\s)(?:\S*[/\\])?(?:{_SCRIPT_RUNNERS})(?:\.exe)?\s+(?:run|run-script|exec|x|dlx|eval|task)\b",
    # eval(...), exec(...), new Function(...)
    r"\b(?:eval|exec|Function)\s*\(",
    # awk '{ print ENVIRON["KEY"] }'
    r"\bENVIRON\s*\[",
))

# Direct environment access: shell expansion and language idioms
ENV_ACCESS_PATTERNS = tuple(re.compile(p) for p in (
    r"\$\{?[A-Za-z_][A-Za-z0-9_]*\}?",
    r"process\.env",
    r"os\.environ",
    r"os\.getenv",
    r"getenv\(",
    r"\bENV\[",
    r"\bENV\.fetch",
    r"System\.getenv",
    r"Deno\.env",
    r"Bun\.env",
    r"import\.meta\.env",
    r"/proc/[^/\s]+/environ",
))

# Commands trusted to run without confirmation
ALLOWLIST = frozenset({
    # package managers and build tools
    "npm", "yarn", "pnpm", "bun", "pip", "pip3", "pipx", "uv", "poetry", "pdm",
    "bundle", "gem", "composer", "cargo", "go", "make", "cmake", "ninja",
    "gradle", "mvn", "dotnet", "mix", "swift",
    # compilers and runtimes
    "gcc", "g++", "clang", "clang++", "rustc", "javac", "java", "tsc",
    "node", "deno", "python", "python3", "ruby", "php",
    # test runners and linters
    "pytest", "tox", "nox", "jest", "vitest", "mocha", "rspec", "eslint",
    "prettier", "ruff", "black", "mypy",
    # version control
    "git", "gh", "hg", "svn",
    # file utilities
    "ls", "cat", "less", "more", "head", "tail", "grep", "rg", "find", "fd",
    "cp", "mv", "mkdir", "touch", "wc", "diff", "tree", "tar", "zip", "unzip",
    # editors
    "vim", "nvim", "nano", "emacs", "code",
    # network, cloud and containers
    "curl", "wget", "ssh", "scp", "rsync", "docker", "docker-compose",
    "podman", "kubectl", "helm", "terraform", "aws", "gcloud", "az",
    "flyctl", "vercel", "netlify", "heroku", "supabase", "wrangler",
    # databases and migrations
    "psql", "mysql", "redis-cli", "prisma",
})


@dataclass(frozen=True)
class ClassificationVerdict:
    suspicious: bool
    reason: str = ""


@dataclass(frozen=True)
class Invocation:
    """A command line prepared once for all rules."""

    argv: Tuple[str, ...]
    base: str
    joined: str

    @classmethod
    def from_argv(cls, argv: Sequence[str]) -> "Invocation":
        argv = tuple(argv)
        return cls(argv=argv, base=base_command(argv[0]), joined=" ".join(argv))


@dataclass(frozen=True)
class Rule:
    name: str
    reason: str
    matches: Callable[[Invocation], bool]


def base_command(command: str) -> str:
    """Lowercased command name without directory or ``.exe`` suffix."""
    name = re.split(r"[/\\]", command)[-1].lower()
    if name.endswith(".exe"):
        name = name[:-4]
    return name


def _any_pattern(patterns) -> Callable[[Invocation], bool]:
    return lambda inv: any(p.search(inv.joined) for p in patterns)


RULES: Tuple[Rule, ...] = (
    Rule("env-dump", REASON_DISPLAYS_ENV, lambda inv: inv.base in ENV_DUMP_COMMANDS),
    Rule("inline-code", REASON_INLINE_CODE, _any_pattern(INLINE_CODE_PATTERNS)),
    Rule("env-access", REASON_ENV_ACCESS, _any_pattern(ENV_ACCESS_PATTERNS)),
    Rule("not-allowlisted", REASON_NOT_ALLOWLISTED, lambda inv: inv.base not in ALLOWLIST),
)


def classify(argv: Sequence[str], rules: Sequence[Rule] = RULES) -> ClassificationVerdict:
    """Classify a command line. Pure: no I/O, no state."""
    if not argv:
        return ClassificationVerdict(suspicious=False)

    invocation = Invocation.from_argv(argv)
    for rule in rules:
        if rule.matches(invocation):
            return ClassificationVerdict(suspicious=True, reason=rule.reason)

    return ClassificationVerdict(suspicious=False)
