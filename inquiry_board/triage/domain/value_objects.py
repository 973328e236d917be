"""
Triage Value Objects
====================

Fixed data the triage pipeline works from: the diagnostic probe battery,
the labels probes are shown under, and the alias pool for published
analysis comments.
"""

import random
import re
import shlex
from typing import Dict, List, Optional, Tuple

# Probe name -> mapping of probe results
DiagnosticsBundle = Dict[str, str]


# ========== Probe battery ==========

# Each command carries its own fallbacks so a missing service yields a
# sentinel line instead of a failed probe.
BASE_PROBES: List[Tuple[str, str]] = [
    ("uptime", "uptime"),
    ("disk", "df -h / 2>&1 | tail -1"),
    ("memory", 'free -h 2>&1 | grep -E "Mem|total"'),
    ("cpu_load", "cat /proc/loadavg 2>&1"),
    (
        "web_server",
        "systemctl is-active nginx 2>/dev/null || systemctl is-active apache2 2>/dev/null"
        " || systemctl is-active httpd 2>/dev/null || echo \"unknown\""
    ),
    (
        "mysql_status",
        "systemctl is-active mysql 2>/dev/null || systemctl is-active mariadb 2>/dev/null"
        " || systemctl is-active mysqld 2>/dev/null || echo \"unknown\""
    ),
    (
        "web_error_log",
        "tail -20 /var/log/nginx/error.log 2>/dev/null || tail -20 /var/log/apache2/error.log 2>/dev/null"
        " || tail -20 /var/log/httpd/error_log 2>/dev/null || echo \"로그 없음\""
    ),
    (
        "php_error_log",
        "tail -20 /var/log/php*error*.log 2>/dev/null || tail -20 /var/log/php-fpm/*.log 2>/dev/null"
        " || echo \"로그 없음\""
    ),
    ("php_fpm_status", "systemctl is-active php*-fpm 2>/dev/null || echo \"unknown\""),
    (
        "listening_ports",
        "ss -tlnp 2>/dev/null | grep -E \":80|:443|:3306|:8080\""
        " || netstat -tlnp 2>/dev/null | grep -E \":80|:443|:3306|:8080\" || echo \"확인 불가\""
    ),
    (
        "recent_cron",
        "tail -10 /var/log/syslog 2>/dev/null | grep -i cron || tail -10 /var/log/cron 2>/dev/null"
        " || echo \"없음\""
    ),
]

PROBE_LABELS: Dict[str, str] = {
    "uptime": "서버 가동시간",
    "disk": "디스크 사용량",
    "memory": "메모리 상태",
    "cpu_load": "CPU 부하",
    "web_server": "웹서버 상태",
    "mysql_status": "MySQL/MariaDB 상태",
    "php_fpm_status": "PHP-FPM 상태",
    "listening_ports": "리슨 포트",
    "site_http_check": "사이트 HTTP 응답",
    "db_check": "DB 접속 확인",
    "db_process": "DB 프로세스",
    "web_error_log": "웹서버 에러 로그 (최근)",
    "php_error_log": "PHP 에러 로그 (최근)",
    "recent_cron": "최근 크론 로그",
}

_SCHEME = re.compile(r"^https?://", re.IGNORECASE)


def probe_label(name: str) -> str:
    return PROBE_LABELS.get(name, name)


def http_probe(site_url: str) -> str:
    """HTTPS then HTTP reachability check reporting status code and total time."""
    host = _SCHEME.sub("", site_url.strip()).rstrip("/")
    curl = "curl -sI -o /dev/null -w '%{http_code} %{time_total}s' --max-time 10"
    return (
        f"{curl} {shlex.quote('https://' + host)} 2>&1"
        f" || {curl} {shlex.quote('http://' + host)} 2>&1"
    )


def database_probes(db_user: str, db_password: str) -> List[Tuple[str, str]]:
    """Database listing and running-query probes with inline credentials."""
    login = f"mysql -u{shlex.quote(db_user or 'root')} -p{shlex.quote(db_password)}"
    return [
        ("db_check", f"{login} -e 'SHOW DATABASES;' 2>&1 | head -20"),
        ("db_process", f"{login} -e 'SHOW PROCESSLIST;' 2>&1 | head -20"),
    ]


def build_probe_battery(
    site_url: Optional[str] = None,
    db_user: Optional[str] = None,
    db_password: Optional[str] = None
) -> List[Tuple[str, str]]:
    """Ordered probes for one server: the fixed battery plus conditional extras."""
    probes = list(BASE_PROBES)
    if site_url:
        probes.append(("site_http_check", http_probe(site_url)))
    if db_password:
        probes.extend(database_probes(db_user or "root", db_password))
    return probes


# ========== Display aliases ==========

ADMIN_ALIASES: Tuple[str, ...] = (
    "에단", "미러", "마이클", "샘슨", "조나단", "엘리사",
    "미첼", "에비게일", "나탸샤", "촬리", "버클리", "엣지",
)


def pick_display_alias(rng: random.Random) -> str:
    """Author name for an automated comment, drawn from the alias pool."""
    return rng.choice(ADMIN_ALIASES)
