"""版本比较与约束解析

版本比较采用点分数字语义（与 PHP version_compare 一致）:
  - 数字段按数值比较，段数不同时多出的数字段视为更新
  - 非数字后缀按 dev < alpha = a < beta = b < rc < (数字) < pl = p 排序

约束策略（简化版，并非完整 semver）:
  - "*"        排除 dev/alpha/beta/rc 后取最大；全被排除则取全部的最大
  - 精确版本   可用列表中原样存在则直接返回
  - "^X.Y.Z"   [X.Y.Z, (X+1).0.0) 内取最大
  - "~X.Y.Z"   [X.Y.Z, X.(Y+1).0) 内取最大
  - 其他/未满足 就近匹配: 去掉 ^ ~ >= > 前缀得到基准版本，取 >= 基准的最大，
                否则取全部最大，并给出警告

每个包的约束独立解析，不做跨包回溯。
"""

from __future__ import annotations

import functools
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from pcomposer.core.exceptions import NoCompatibleVersionError

logger = logging.getLogger(__name__)

PRERELEASE_MARKERS = ("dev", "alpha", "beta", "rc")

# 按前缀匹配，顺序即优先级（alpha 先于 a，pl 先于 p）；都不匹配的排在 dev 之前
_SPECIAL_FORMS = (
    ("dev", 0),
    ("alpha", 1), ("a", 1),
    ("beta", 2), ("b", 2),
    ("rc", 3),
    ("#", 4),
    ("pl", 5), ("p", 5),
)
_UNKNOWN_RANK = -6
_RANGE_PREFIXES = (">=", "^", "~", ">")
_LEADING_INT = re.compile(r"^\s*(\d+)")


# =========================================================================
# 版本比较
# =========================================================================

def _canonicalize(version: str) -> list[str]:
    v = version.strip().lower()
    if len(v) > 1 and v[0] == "v" and v[1].isdigit():
        v = v[1:]
    out: list[str] = []
    prev = ""
    for ch in v:
        if ch in "-_+":
            ch = "."
        elif prev and prev != "." and ch != "." and (prev.isdigit() != ch.isdigit()):
            out.append(".")
        out.append(ch)
        prev = ch
    return [p for p in "".join(out).split(".") if p]


def _special_rank(part: str) -> int:
    if part.isdigit():
        part = "#"
    for form, rank in _SPECIAL_FORMS:
        if part.startswith(form):
            return rank
    return _UNKNOWN_RANK


def _compare_parts(a: str, b: str) -> int:
    if a.isdigit() and b.isdigit():
        ia, ib = int(a), int(b)
        return (ia > ib) - (ia < ib)
    ra, rb = _special_rank(a), _special_rank(b)
    return (ra > rb) - (ra < rb)


def compare_versions(a: str, b: str) -> int:
    """比较两个版本，返回 -1 / 0 / 1"""
    pa, pb = _canonicalize(a), _canonicalize(b)
    for x, y in zip(pa, pb):
        c = _compare_parts(x, y)
        if c:
            return c
    if len(pa) == len(pb):
        return 0
    # 多出来的段: 数字段说明更新，字符串段（如 rc）与 "#" 比较
    if len(pa) > len(pb):
        extra = pa[len(pb)]
        return 1 if extra.isdigit() else _compare_parts(extra, "#")
    extra = pb[len(pa)]
    return -1 if extra.isdigit() else -_compare_parts(extra, "#")


version_key = functools.cmp_to_key(compare_versions)


def sort_versions(versions: Iterable[str]) -> list[str]:
    return sorted(versions, key=version_key)


def max_version(versions: Iterable[str]) -> str | None:
    """点分数字意义上的最大版本，空集合返回 None"""
    ordered = sort_versions(versions)
    return ordered[-1] if ordered else None


def is_prerelease(version: str) -> bool:
    lowered = version.lower()
    return any(marker in lowered for marker in PRERELEASE_MARKERS)


def _leading_int(part: str) -> int:
    m = _LEADING_INT.match(part)
    return int(m.group(1)) if m else 0


def next_major(version: str) -> str:
    """^ 上界: (X+1).0.0"""
    parts = version.split(".")
    return f"{_leading_int(parts[0]) + 1}.0.0"


def next_minor(version: str) -> str:
    """~ 上界: X.(Y+1).0"""
    parts = version.split(".")
    minor = _leading_int(parts[1]) if len(parts) > 1 else 0
    return f"{_leading_int(parts[0])}.{minor + 1}.0"


def strip_range_prefix(constraint: str) -> str:
    c = constraint.strip()
    for prefix in _RANGE_PREFIXES:
        if c.startswith(prefix):
            return c[len(prefix):].strip()
    return c


# =========================================================================
# 约束解析
# =========================================================================

@dataclass
class Selection:
    """一次约束解析的结果；warning 非空表示使用了就近匹配"""

    constraint: str
    version: str
    warning: str | None = None


class VersionConstraintResolver:
    """约束 -> 具体版本（纯函数，无 I/O）"""

    def select(self, constraint: str, available: Iterable[str]) -> Selection:
        versions = list(dict.fromkeys(available))
        if not versions:
            raise NoCompatibleVersionError(
                f"没有可用版本满足约束 '{constraint}'（可用版本列表为空）"
            )
        constraint = constraint.strip()

        if constraint == "*":
            stable = [v for v in versions if not is_prerelease(v)]
            chosen = max_version(stable or versions)
            assert chosen is not None
            return Selection(constraint, chosen)

        if constraint in versions:
            return Selection(constraint, constraint)

        if constraint.startswith("^"):
            base = constraint[1:].strip()
            found = self._max_in_range(versions, base, next_major(base))
            if found:
                return Selection(constraint, found)

        if constraint.startswith("~"):
            base = constraint[1:].strip()
            found = self._max_in_range(versions, base, next_minor(base))
            if found:
                return Selection(constraint, found)

        closest = self._closest(constraint, versions)
        warning = f"约束 '{constraint}' 无法精确满足，使用最接近的可用版本 {closest}"
        return Selection(constraint, closest, warning)

    def resolve(self, constraint: str, available: Iterable[str]) -> str:
        """解析约束并返回版本；就近匹配时记录警告"""
        selection = self.select(constraint, available)
        if selection.warning:
            logger.warning(selection.warning)
        return selection.version

    @staticmethod
    def _max_in_range(versions: list[str], low: str, high: str) -> str | None:
        return max_version(
            v for v in versions
            if compare_versions(v, low) >= 0 and compare_versions(v, high) < 0
        )

    @staticmethod
    def _closest(constraint: str, versions: list[str]) -> str:
        base = strip_range_prefix(constraint)
        newer = [v for v in versions if compare_versions(v, base) >= 0]
        chosen = max_version(newer or versions)
        assert chosen is not None
        return chosen
