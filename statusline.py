#!/usr/bin/env python3
"""Claude Code Statusline — 3-line status with ANSI colors.

Line 1: Directory, language version, virtualenv, model (+ thinking), account type.
Line 2: Git branch (clickable PR link), status markers, push/pull counts, PR size.
Line 3: Context bar, session id/slug, cost with input/output split, daily total,
        burn rate, session duration, clock.

Input:   one JSON snapshot on stdin per refresh.
Color coding: green <50%, yellow 50-79%, red >=80% (context bar and PR size).

Config:  ~/.claude/statusline.toml (optional, STATUSLINE_CONFIG overrides)
State:   ~/.claude/cache/ (session start times, daily cost ledger)
"""

import sys, json, os, re, math, subprocess, time, shutil, tempfile, logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from pathlib import Path
from typing import Optional
from urllib.parse import quote

logger = logging.getLogger("statusline")

# ═══════════════════════ CONFIG ═══════════════════════

CACHE_DIR = Path("~/.claude/cache").expanduser()
ACCOUNT_FILE = Path("~/.claude/statusline-account.txt").expanduser()
SETTINGS_FILE = Path("~/.claude/settings.json").expanduser()
GIT_TIMEOUT = 3            # seconds per external command
PR_LINK = True             # ask `gh` for an open PR URL
CTX_WARN = 50              # Yellow threshold (context %, PR size tiers)
CTX_CRIT = 80              # Red threshold
DIR_MAX = 48               # Longer directory paths keep only their tail
LOG_LEVEL = "WARNING"

DEFAULT_CONTEXT = 1_000_000
DEFAULT_SESSION = "unknown"
DEFAULT_MODEL = "Claude"
DEFAULT_ACCOUNT = "Max"
SESSION_ID_LEN = 8
DETACHED_PREFIX = "detached@"
DEFAULT_BRANCHES = ("main", "master", "develop")
BURN_MIN_SECONDS = 60      # Younger sessions report 0.00/hr

# Configurable symbols — change for different terminals/tastes
SYM_BAR = ("▓", "░")       # Context bar (filled, empty)

def config_path():
    return Path(os.environ.get("STATUSLINE_CONFIG") or "~/.claude/statusline.toml").expanduser()

def load_config(path=None):
    """Load optional TOML config, override defaults. Requires tomllib (3.11+) or tomli."""
    global CACHE_DIR, ACCOUNT_FILE, SETTINGS_FILE, GIT_TIMEOUT, PR_LINK
    global CTX_WARN, CTX_CRIT, DIR_MAX, LOG_LEVEL, SYM_BAR

    cfg_path = Path(path) if path else config_path()
    if not cfg_path.exists():
        return

    try:
        try:
            import tomllib
        except ImportError:
            import tomli as tomllib  # type: ignore
        with open(cfg_path, "rb") as f:
            cfg = tomllib.load(f)
    except (OSError, ValueError) as e:
        logger.warning("ignoring config %s: %s", cfg_path, e)
        return

    p = _cfg_section(cfg, "paths")
    CACHE_DIR = Path(_cfg_value(p, "cache_dir", str(CACHE_DIR), str)).expanduser()
    ACCOUNT_FILE = Path(_cfg_value(p, "account_file", str(ACCOUNT_FILE), str)).expanduser()
    SETTINGS_FILE = Path(_cfg_value(p, "settings_file", str(SETTINGS_FILE), str)).expanduser()

    g = _cfg_section(cfg, "git")
    GIT_TIMEOUT = _cfg_number(g, "timeout", GIT_TIMEOUT, minimum=0.1)
    PR_LINK = _cfg_value(g, "pr_link", PR_LINK, bool)

    t = _cfg_section(cfg, "thresholds")
    CTX_WARN = _cfg_number(t, "ctx_warn", CTX_WARN)
    CTX_CRIT = _cfg_number(t, "ctx_crit", CTX_CRIT)
    DIR_MAX = int(_cfg_number(t, "dir_max", DIR_MAX))

    s = _cfg_section(cfg, "symbols")
    bar = s.get("bar")
    if bar is not None:
        if isinstance(bar, list) and len(bar) == 2 and all(isinstance(c, str) and c for c in bar):
            SYM_BAR = tuple(bar)
        else:
            logger.warning("config symbols.bar must be two non-empty strings, ignoring %r", bar)

    LOG_LEVEL = _cfg_value(_cfg_section(cfg, "log"), "level", LOG_LEVEL, str)

def _cfg_section(cfg, name):
    section = cfg.get(name, {})
    if isinstance(section, dict):
        return section
    logger.warning("config [%s] is not a table, ignoring", name)
    return {}

def _cfg_value(section, key, default, kind):
    """section[key] if it has the setting's type, else default (with a warning)."""
    if key not in section:
        return default
    value = section[key]
    if isinstance(value, kind):
        return value
    logger.warning("config %s=%r should be %s, keeping %r", key, value, kind.__name__, default)
    return default

def _cfg_number(section, key, default, minimum=0):
    if key not in section:
        return default
    value = section[key]
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value) and value >= minimum:
        return value
    logger.warning("config %s=%r should be a number >= %s, keeping %r", key, value, minimum, default)
    return default

def setup_logging():
    """Diagnostics go to stderr; stdout carries only the three lines."""
    level = os.environ.get("STATUSLINE_LOG_LEVEL") or LOG_LEVEL
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("statusline: %(levelname)s: %(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(getattr(logging, str(level).upper(), logging.WARNING))

def extend_path():
    """Statusline commands run with a minimal PATH; add common tool dirs (gh, node, go)."""
    for p in ("~/.local/bin", "/usr/local/bin", "/opt/homebrew/bin", "~/go/bin"):
        expanded = os.path.expanduser(p)
        if expanded not in os.environ.get("PATH", "").split(os.pathsep):
            os.environ["PATH"] = expanded + os.pathsep + os.environ.get("PATH", "")

# ═══════════════════════ ANSI ═══════════════════════

R   = "\033[0m"      # Reset
GR  = "\033[1;32m"   # Green
YL  = "\033[1;33m"   # Yellow
RD  = "\033[1;31m"   # Red
CY  = "\033[1;36m"   # Cyan
MG  = "\033[1;35m"   # Magenta
GY  = "\033[1;90m"   # Gray
DM  = "\033[0;90m"   # Dim gray (empty bar)
PU  = "\033[0;35m"   # Model
BRD = "\033[1;91m"   # Conflicts
BGR = "\033[1;92m"   # Staged
BYL = "\033[1;93m"   # Modified
BCY = "\033[1;96m"   # Untracked
BMG = "\033[1;95m"   # Stash
BBL = "\033[1;94m"   # Push/pull

SAFE, WARN, CRIT = GR, YL, RD

CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")

def severity(pct):
    """Color for a percentage: green <CTX_WARN, yellow <CTX_CRIT, red above."""
    if pct >= CTX_CRIT: return CRIT
    if pct >= CTX_WARN: return WARN
    return SAFE

def paint(color, txt):
    return f"{color}{txt}{R}"

def osc8(url, txt):
    """OSC 8 clickable hyperlink (iTerm2, Kitty, WezTerm)."""
    return f"\033]8;;{url}\033\\{txt}\033]8;;\033\\"

def clean(txt):
    """Strip control characters so untrusted text can't inject escapes."""
    return CONTROL_RE.sub("", txt)

# ═══════════════════════ INPUT ═══════════════════════

class StatuslineError(ValueError):
    """Input problem that leaves nothing to render."""

class EmptyInput(StatuslineError):
    pass

class MalformedJson(StatuslineError):
    pass

COST_RE = re.compile(r"[0-9]+(\.[0-9]+)?")
DIGITS_RE = re.compile(r"[0-9]+")
UNSAFE_ID_RE = re.compile(r"[^A-Za-z0-9_-]")
CENT = Decimal("0.01")

@dataclass(frozen=True)
class StatusSnapshot:
    current_dir: str = "."
    cost: str = "0.00"
    model_name: str = DEFAULT_MODEL
    model_id: str = ""
    session_id: str = DEFAULT_SESSION
    transcript_path: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    context_size: int = DEFAULT_CONTEXT

def safe_int(value, default=0):
    """Non-negative int from an untrusted value, else default."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if value >= 0 else default
    if isinstance(value, float):
        return int(value) if value.is_integer() and value >= 0 else default
    if isinstance(value, str) and DIGITS_RE.fullmatch(value.strip()):
        return int(value.strip())
    return default

def safe_str(value, default=""):
    return value if isinstance(value, str) and value.strip() else default

def format_cost(value):
    """Cost as a 2-decimal string with a period separator whatever the locale."""
    if value is None:
        value = "0"
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        text = format(Decimal(str(value)), "f")
    else:
        text = str(value).strip()
    if not COST_RE.fullmatch(text):
        logger.warning("invalid cost %r, using 0.00", value)
        return "0.00"
    try:
        return str(Decimal(text).quantize(CENT, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        logger.warning("cost %r out of range, using 0.00", value)
        return "0.00"

def normalize_dir(value):
    if isinstance(value, str) and value and os.path.isdir(value) and os.access(value, os.R_OK | os.X_OK):
        return value
    if value:
        logger.warning("directory %r not readable, using current directory", value)
    return "."

def normalize_session_id(value):
    """First 8 chars of the session id, made safe for file names and the ledger."""
    sid = safe_str(value, DEFAULT_SESSION)[:SESSION_ID_LEN]
    return UNSAFE_ID_RE.sub("_", sid)

def _section(data, key):
    v = data.get(key)
    return v if isinstance(v, dict) else {}

def parse_snapshot(raw):
    """Parse and normalize the stdin payload. Only empty/non-JSON input raises."""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if not raw or not raw.strip():
        raise EmptyInput("no status JSON on stdin")
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise MalformedJson(f"stdin is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedJson("stdin JSON is not an object")

    ws, cost, model, cw = (_section(data, k) for k in ("workspace", "cost", "model", "context_window"))

    size = safe_int(cw.get("context_window_size"), DEFAULT_CONTEXT)
    if size == 0:
        logger.warning("context_window_size is 0, using %d", DEFAULT_CONTEXT)
        size = DEFAULT_CONTEXT

    return StatusSnapshot(
        current_dir=normalize_dir(ws.get("current_dir")),
        cost=format_cost(cost.get("total_cost_usd")),
        model_name=safe_str(model.get("display_name"), DEFAULT_MODEL),
        model_id=safe_str(model.get("id")),
        session_id=normalize_session_id(data.get("session_id")),
        transcript_path=safe_str(data.get("transcript_path")),
        input_tokens=safe_int(cw.get("total_input_tokens")),
        output_tokens=safe_int(cw.get("total_output_tokens")),
        context_size=size,
    )

def read_stdin():
    stream = getattr(sys.stdin, "buffer", sys.stdin)
    return stream.read()

# ═══════════════════════ PRICING ═══════════════════════

# $/MTok (input, output). First substring match wins: haiku-3.5 before haiku-3.
PRICING = (
    ("opus-4",    (Decimal("5"),    Decimal("25"))),
    ("sonnet-4",  (Decimal("3"),    Decimal("15"))),
    ("haiku-4",   (Decimal("1"),    Decimal("5"))),
    ("haiku-3.5", (Decimal("0.8"),  Decimal("4"))),
    ("haiku-3",   (Decimal("0.25"), Decimal("1.25"))),
)
DEFAULT_PRICE = (Decimal("3"), Decimal("15"))
MILLION = Decimal(1_000_000)
MILLI = Decimal("0.001")

def price_for(model_id):
    for pattern, prices in PRICING:
        if pattern in model_id:
            return prices
    return DEFAULT_PRICE

def token_cost(tokens, price):
    return (Decimal(tokens) / MILLION * Decimal(str(price))).quantize(MILLI, rounding=ROUND_HALF_UP)

def cost_breakdown(snap):
    """(input cost, output cost) for the session's token totals."""
    in_price, out_price = price_for(snap.model_id)
    return token_cost(snap.input_tokens, in_price), token_cost(snap.output_tokens, out_price)

# ═══════════════════════ STATE ═══════════════════════

def resolve_cache_dir(preferred=None):
    """First usable of: preferred, <tmp>/claude-statusline, <tmp>."""
    tmp = Path(tempfile.gettempdir())
    for cand in (Path(preferred or CACHE_DIR), tmp / "claude-statusline"):
        try:
            cand.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("cache dir %s unusable: %s", cand, e)
            continue
        if os.access(cand, os.W_OK):
            return cand
        logger.warning("cache dir %s not writable", cand)
    return tmp

def _tmp_for(path):
    return tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")

def _unlink_quiet(name):
    try:
        os.unlink(name)
    except OSError:
        pass

def atomic_write(path, text):
    """Write to a unique temp file beside path, then rename over it."""
    fd, tmp = _tmp_for(path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp, path)
    except BaseException:
        _unlink_quiet(tmp)
        raise

def create_exclusive(path, text):
    """Publish text at path unless it already exists. True if this call created it."""
    fd, tmp = _tmp_for(path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        try:
            os.link(tmp, path)
        except FileExistsError:
            return False
        except OSError:
            # No hard links here: last writer wins
            os.replace(tmp, path)
        return True
    finally:
        _unlink_quiet(tmp)

def rjson(path):
    """Safely read JSON from file."""
    try:
        if path.exists() and path.stat().st_size > 0:
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("unreadable JSON file %s: %s", path, e)
    return None

class SessionStore:
    """Session start times and the per-day cost ledger under one cache root.

    Files:
      session_start_<id>.txt       epoch seconds, written once
      daily_sessions_<date>.txt    one <id>:<cost> line per session
      daily_cost_<date>.txt        cached sum of the ledger

    Every write goes through a temp file and an atomic rename, so parallel
    statusline processes never read a torn file. Filesystem errors are
    logged and turned into defaults.
    """

    def __init__(self, root=None, clock=time.time):
        self.root = resolve_cache_dir(root)
        self.clock = clock
        # Fixed per invocation so ledger and total always agree on the day
        self.day = datetime.fromtimestamp(clock()).strftime("%Y-%m-%d")

    def today(self):
        return self.day

    def start_path(self, session_id):
        return self.root / f"session_start_{session_id}.txt"

    def ledger_path(self):
        return self.root / f"daily_sessions_{self.today()}.txt"

    def total_path(self):
        return self.root / f"daily_cost_{self.today()}.txt"

    def _read_start(self, path):
        try:
            text = path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning("cannot read %s: %s", path, e)
            return None
        if DIGITS_RE.fullmatch(text):
            return int(text)
        logger.warning("corrupt session start %r in %s, resetting", text, path)
        return None

    def start_time(self, session_id):
        """Start timestamp for the session, recorded on first sight."""
        path = self.start_path(session_id)
        stored = self._read_start(path)
        if stored is not None:
            return stored

        now = int(self.clock())
        try:
            if path.exists():
                atomic_write(path, f"{now}\n")
            elif not create_exclusive(path, f"{now}\n"):
                # Lost the race to a parallel invocation
                stored = self._read_start(path)
                if stored is not None:
                    return stored
        except OSError as e:
            logger.warning("cannot record session start in %s: %s", path, e)
        return now

    def session_duration(self, session_id):
        return max(0, int(self.clock()) - self.start_time(session_id))

    def _read_ledger(self, path):
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return []
        if "\ufffd" in text:
            logger.warning("cost ledger %s has undecodable bytes", path)
        return [line for line in text.splitlines() if line.strip()]

    def record_cost(self, session_id, cost):
        """Replace this session's line in today's ledger."""
        path = self.ledger_path()
        prefix = f"{session_id}:"
        try:
            lines = [line for line in self._read_ledger(path) if not line.startswith(prefix)]
            lines.append(f"{session_id}:{cost}")
            atomic_write(path, "\n".join(lines) + "\n")
        except OSError as e:
            logger.warning("cannot update cost ledger %s: %s", path, e)

    def ledger(self):
        """{session_id: cost} for today, latest line per session."""
        try:
            lines = self._read_ledger(self.ledger_path())
        except OSError as e:
            logger.warning("cannot read cost ledger: %s", e)
            return {}
        out = {}
        for line in lines:
            sid, _, value = line.partition(":")
            try:
                cost = Decimal(value.strip())
            except InvalidOperation:
                logger.debug("skipping ledger line %r", line)
                continue
            if cost.is_finite():
                out[sid] = cost
        return out

    def daily_total(self):
        """Sum of the ledger, 2 decimals. Also cached to daily_cost_<date>.txt."""
        total = sum(self.ledger().values(), Decimal(0))
        formatted = str(total.quantize(CENT, rounding=ROUND_HALF_UP))
        try:
            atomic_write(self.total_path(), formatted + "\n")
        except OSError as e:
            logger.warning("cannot cache daily total: %s", e)
        return formatted

# ═══════════════════════ GIT ═══════════════════════

GITHUB_RE = re.compile(
    r"(?:git@github\.com:|(?:ssh|https?|git)://(?:[^@/]+@)?github\.com(?::\d+)?/)"
    r"([^/\s]+)/([^/\s]+?)(?:\.git)?/?"
)
SHORTSTAT_RE = re.compile(r"(\d+) insertions?\(\+\)|(\d+) deletions?\(-\)")

# (inclusive upper bound, label, color); anything larger is XXL
SIZE_TIERS = (
    (10,   "XS", SAFE),
    (30,   "S",  SAFE),
    (100,  "M",  WARN),
    (500,  "L",  WARN),
    (1000, "XL", CRIT),
)

@dataclass
class VcsStatus:
    branch: str
    conflicted: int = 0
    staged: int = 0
    modified: int = 0
    untracked: int = 0
    stashed: int = 0
    ahead: int = 0
    behind: int = 0
    default_branch: str = ""
    changes: Optional[int] = None
    url: str = ""

    @property
    def is_clean(self):
        # Stash entries don't count
        return not (self.staged or self.modified or self.untracked or self.conflicted)

def run_cmd(args, cwd=None, env=None):
    """Run a command, return stripped stdout or "" on failure/timeout."""
    try:
        r = subprocess.run(args, cwd=cwd, env=env, capture_output=True, text=True,
                           errors="replace", timeout=GIT_TIMEOUT)
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("%s failed: %s", args[0], e)
        return ""
    if r.returncode != 0:
        return ""
    return r.stdout.strip()

def git(directory, *args):
    env = dict(os.environ, GIT_OPTIONAL_LOCKS="0")
    return run_cmd(["git", "-C", str(directory), *args], env=env)

def count_lines(text):
    return len(text.splitlines()) if text else 0

def github_slug(url):
    """owner/repo for a GitHub remote URL (SSH or HTTPS), "" otherwise."""
    m = GITHUB_RE.fullmatch(url.strip()) if url else None
    return f"{m.group(1)}/{m.group(2)}" if m else ""

def pr_link(directory, slug, branch):
    """Open PR URL from `gh` when available, else the branch page."""
    if PR_LINK and shutil.which("gh"):
        url = run_cmd(["gh", "pr", "view", branch, "--repo", slug, "--json", "url", "--jq", ".url"],
                      cwd=str(directory))
        if url.startswith("https://"):
            return url
    return f"https://github.com/{slug}/tree/{quote(branch, safe='/')}"

def upstream_info(directory, branch):
    """(upstream, remote, remote branch, remote url); upstream "" when untracked."""
    upstream = git(directory, "rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{upstream}")
    if not upstream:
        return "", "", "", ""
    remote = git(directory, "config", "--get", f"branch.{branch}.remote") or upstream.split("/", 1)[0]
    if upstream.startswith(remote + "/"):
        remote_branch = upstream[len(remote) + 1:]
    else:
        remote_branch = upstream
    url = git(directory, "config", "--get", f"remote.{remote}.url")
    return upstream, remote, remote_branch, url

def default_branch(directory, remote="origin"):
    """Remote HEAD, else the first of main/master/develop that exists."""
    prefix = f"refs/remotes/{remote}/"
    ref = git(directory, "symbolic-ref", f"{prefix}HEAD")
    if ref.startswith(prefix):
        return ref[len(prefix):]
    for name in DEFAULT_BRANCHES:
        if git(directory, "rev-parse", "--verify", "--quiet", name):
            return name
    return ""

def change_magnitude(directory, base):
    """Inserted + deleted lines between the merge-base with base and HEAD."""
    out = git(directory, "diff", "--shortstat", f"{base}...HEAD")
    return sum(int(ins or dels) for ins, dels in SHORTSTAT_RE.findall(out))

def size_label(changes):
    for limit, label, color in SIZE_TIERS:
        if changes <= limit:
            return label, color
    return "XXL", CRIT

def is_repo(directory):
    return bool(git(directory, "rev-parse", "--git-dir"))

def inspect_repo(directory):
    """VcsStatus for directory, or None outside a git work tree."""
    if not is_repo(directory):
        logger.debug("%s is not a git repository", directory)
        return None

    branch = git(directory, "branch", "--show-current")
    if not branch:
        branch = DETACHED_PREFIX + git(directory, "rev-parse", "--short", "HEAD")
    st = VcsStatus(branch=branch)

    st.untracked = safe_int(count_lines(git(directory, "ls-files", "--others", "--exclude-standard")))
    st.modified = safe_int(count_lines(git(directory, "diff", "--name-only")))
    st.staged = safe_int(count_lines(git(directory, "diff", "--cached", "--name-only")))
    st.stashed = safe_int(count_lines(git(directory, "stash", "list")))
    st.conflicted = safe_int(count_lines(git(directory, "diff", "--name-only", "--diff-filter=U")))

    upstream, remote, remote_branch, remote_url = upstream_info(directory, branch)
    if upstream:
        st.ahead = safe_int(git(directory, "rev-list", "--count", "@{upstream}..HEAD"))
        st.behind = safe_int(git(directory, "rev-list", "--count", "HEAD..@{upstream}"))
        slug = github_slug(remote_url)
        if slug:
            st.url = pr_link(directory, slug, remote_branch)

    st.default_branch = default_branch(directory, remote or "origin")
    if st.default_branch and branch != st.default_branch:
        st.changes = change_magnitude(directory, st.default_branch)
    return st

# ═══════════════════════ ENVIRONMENT ═══════════════════════

# Applied in order, first occurrence only
MODEL_ABBREV = (("Claude ", ""), (" Sonnet", ""), ("Sonnet ", ""), ("Opus ", "O"), ("Haiku ", "H"))
VENV_ABBREV = ("virtualenv", ".venv", "venv")
ACCOUNTS = {"pro": ("Pro", CY), "max": ("Max", MG), "team": ("Team", GR)}
PY_MANIFESTS = ("pyproject.toml", "requirements.txt", "setup.py")

def short_model(name):
    for old, new in MODEL_ABBREV:
        name = name.replace(old, new, 1)
    return clean(name)

def _major_minor(version):
    return ".".join(version.split(".")[:2])

def _word(text, idx):
    words = text.split()
    return words[idx] if len(words) > idx else ""

def detect_language(directory):
    """Language version segment from marker files; only the matched tool is run."""
    d = Path(directory)
    pin = d / ".python-version"
    if pin.is_file():
        try:
            lines = pin.read_text(encoding="utf-8", errors="replace").splitlines()
        except OSError:
            lines = []
        ver = _major_minor(lines[0].strip()) if lines else ""
        return f" 🐍{clean(ver)}" if ver else ""
    if any((d / m).is_file() for m in PY_MANIFESTS):
        ver = _major_minor(_word(run_cmd(["python3", "--version"], cwd=str(d)), 1))
        return f" 🐍{ver}" if ver else ""
    if (d / "package.json").is_file():
        ver = run_cmd(["node", "--version"], cwd=str(d)).lstrip("v").split(".")[0]
        return f" ⬢{ver}" if ver else ""
    if (d / "go.mod").is_file():
        word = _word(run_cmd(["go", "version"], cwd=str(d)), 2)
        ver = _major_minor(word[2:] if word.startswith("go") else word)
        return f" 🦫{ver}" if ver else ""
    return ""

def venv_label():
    venv = os.environ.get("VIRTUAL_ENV")
    if not venv:
        return ""
    name = os.path.basename(venv.rstrip("/\\"))
    for token in VENV_ABBREV:
        if token in name:
            name = name.replace(token, "v", 1)
            break
    return f" ({clean(name)})"

def account_label(path=None):
    """API key → API; else the account file; else Max (and write the file)."""
    if "ANTHROPIC_API_KEY" in os.environ:
        return paint(YL, "API")
    path = Path(path or ACCOUNT_FILE)
    try:
        plan = "".join(path.read_text(encoding="utf-8").split())
    except FileNotFoundError:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            atomic_write(path, DEFAULT_ACCOUNT + "\n")
        except OSError as e:
            logger.warning("cannot write account file %s: %s", path, e)
        return paint(MG, DEFAULT_ACCOUNT)
    except (OSError, ValueError) as e:
        logger.warning("cannot read account file %s: %s", path, e)
        return paint(MG, DEFAULT_ACCOUNT)
    label, color = ACCOUNTS.get(plan.lower(), (clean(plan), GY))
    return paint(color, label)

def thinking_enabled(path=None):
    data = rjson(Path(path or SETTINGS_FILE))
    return isinstance(data, dict) and data.get("alwaysThinkingEnabled") is True

def session_slug(transcript_path):
    """slug of the first transcript entry that carries one."""
    if not transcript_path:
        return ""
    try:
        with open(transcript_path, encoding="utf-8", errors="replace") as f:
            for line in f:
                if '"slug"' not in line:
                    continue
                try:
                    entry = json.loads(line)
                except ValueError:
                    return ""
                slug = entry.get("slug") if isinstance(entry, dict) else None
                return clean(slug) if isinstance(slug, str) else ""
    except OSError as e:
        logger.debug("transcript %s unreadable: %s", transcript_path, e)
    return ""

def display_dir(directory, max_len=None):
    """Absolute path with $HOME as ~, long paths cut to their tail."""
    max_len = DIR_MAX if max_len is None else max_len
    path = os.path.abspath(directory)
    home = os.path.expanduser("~")
    if home and home != os.sep and (path == home or path.startswith(home + os.sep)):
        path = "~" + path[len(home):]
    if max_len and len(path) > max_len:
        path = "…" + path[-(max_len - 1):]
    return clean(path)

# ═══════════════════════ FORMATTING ═══════════════════════

def context_percent(snap):
    """Used share of the context window, 0-100."""
    capacity = snap.context_size or DEFAULT_CONTEXT
    pct = round(100 * (snap.input_tokens + snap.output_tokens) / capacity)
    return max(0, min(100, pct))

def context_bar(pct):
    """10-segment bar, floor(pct/10) filled, colored by severity, then the percentage."""
    pct = max(0, min(100, pct))
    f = pct // 10
    return f"{severity(pct)}{SYM_BAR[0] * f}{DM}{SYM_BAR[1] * (10 - f)}{R} {pct}%"

def burn_rate(cost, seconds):
    """Cost per hour, 0.00 until the session is older than a minute."""
    if seconds <= BURN_MIN_SECONDS:
        return "0.00"
    rate = Decimal(cost) * 3600 / Decimal(seconds)
    return str(rate.quantize(CENT, rounding=ROUND_HALF_UP))

def fmtdur(seconds):
    """Format duration: 2h14m or 14m."""
    s = max(0, int(seconds))
    h, m = s // 3600, s % 3600 // 60
    return f"{h}h{m}m" if h else f"{m}m"

# ═══════════════════════ LINE BUILDERS ═══════════════════════

def build_line1(snap, lang="", venv="", thinking=False, account=""):
    """Line 1: directory, language, venv, model (+ thinking), account."""
    brain = " 🧠" if thinking else ""
    return (f"📁 {display_dir(snap.current_dir)}{lang}{venv} │ "
            f"{PU}[{short_model(snap.model_name)}]{brain}{R} │ {account}")

def build_line2(vcs):
    """Line 2: branch, status markers, push/pull, PR size. Bare prefix outside a repo."""
    if vcs is None:
        return "🌿 "

    branch = paint(CY, clean(vcs.branch))
    if vcs.url:
        branch = osc8(vcs.url, branch)

    marks = []
    if vcs.conflicted:
        marks.append(paint(BRD, f"⚠️CONFLICT:{vcs.conflicted}"))
    if vcs.staged:
        marks.append(paint(BGR, f"✓Staged:{vcs.staged}"))
    if vcs.modified:
        marks.append(paint(BYL, f"●Modified:{vcs.modified}"))
    if vcs.untracked:
        marks.append(paint(BCY, f"?Untracked:{vcs.untracked}"))
    if vcs.is_clean:
        marks.append(paint(GR, "✓Clean"))
    if vcs.stashed:
        marks.append(paint(BMG, f"✦Stash:{vcs.stashed}"))
    if vcs.ahead > 0:
        marks.append(paint(BBL, f"↑Push:{vcs.ahead}"))
    if vcs.behind > 0:
        marks.append(paint(BBL, f"↓Pull:{vcs.behind}"))
    if vcs.changes is not None:
        label, color = size_label(vcs.changes)
        marks.append(paint(color, label))

    return "🌿 " + branch + "".join(" " + m for m in marks)

def build_line3(snap, daily, duration, slug="", now=None):
    """Line 3: context bar, session, costs, daily total, burn rate, duration, clock."""
    in_cost, out_cost = cost_breakdown(snap)
    session = f"📋 {snap.session_id}" + (f" ({slug})" if slug else "")
    clock = (now or datetime.now()).strftime("%H:%M")
    return (f"⚡️ {context_bar(context_percent(snap))} │ {session} │ "
            f"💰 ${snap.cost} ({GR}↓${in_cost}{R}/{YL}↑${out_cost}{R}) │ "
            f"📊 ${daily}/day │ 🔥 ${burn_rate(snap.cost, duration)}/hr │ "
            f"⏱️  {fmtdur(duration)} │ 🕐 {clock}")

# ═══════════════════════ MAIN ═══════════════════════

def main():
    load_config()
    setup_logging()
    extend_path()

    try:
        snap = parse_snapshot(read_stdin())
    except StatuslineError as e:
        logger.error("%s", e)
        return 1

    store = SessionStore(CACHE_DIR)
    duration = store.session_duration(snap.session_id)
    store.record_cost(snap.session_id, snap.cost)
    daily = store.daily_total()

    # Line 1 — directory, model, account
    try:
        l1 = build_line1(snap, detect_language(snap.current_dir), venv_label(),
                         thinking_enabled(SETTINGS_FILE), account_label(ACCOUNT_FILE))
    except Exception:
        logger.warning("line 1 failed", exc_info=True)
        l1 = f"📁 {clean(snap.current_dir)}"

    # Line 2 — git
    try:
        l2 = build_line2(inspect_repo(snap.current_dir))
    except Exception:
        logger.warning("line 2 failed", exc_info=True)
        l2 = build_line2(None)

    # Line 3 — context, costs, time
    try:
        l3 = build_line3(snap, daily, duration, session_slug(snap.transcript_path))
    except Exception:
        logger.warning("line 3 failed", exc_info=True)
        l3 = f"⚡️ │ 📋 {snap.session_id} │ 💰 ${snap.cost}"

    print(l1)
    print(l2)
    print(l3)
    return 0

def run():
    sys.exit(main())

if __name__ == "__main__":
    run()
