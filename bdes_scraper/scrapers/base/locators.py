"""Ordered element location strategies for unstable portal markup.

A step never relies on a single selector. It declares an ordered list of
:class:`LocatorStrategy` objects and :func:`locate` returns the first
currently visible element matched by the first strategy that yields one.

Notes
-----
- Strategies are tried strictly in order; inside a strategy, candidates are
  scanned in DOM order and hidden candidates are skipped.
- Every Playwright call is fallible (detached frames, invalid selectors,
  navigations in flight). Errors skip the candidate or the strategy and
  :func:`locate` returns ``None`` rather than raising.
- There is no waiting here. Polling over time belongs to the step layer
  (see :func:`bdes_scraper.scrapers.base.steps.wait_for_any`).
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, NamedTuple, Optional, Sequence, Union

from playwright.async_api import Locator


CandidateFilter = Callable[[Locator], Awaitable[bool]]


@dataclass(frozen=True)
class LocatorStrategy:
    """A named way of finding one semantic element.

    Parameters
    ----------
    name : str
        Label used in logs and step messages.
    build : Callable[[Any], Locator]
        Builds the candidate locator from a scope (``Page``, ``Frame`` or ``Locator``).
    accept : Optional[CandidateFilter], default=None
        Extra predicate a visible candidate must satisfy.
    max_candidates : int, default=15
        Upper bound of candidates inspected for this strategy.
    """

    name: str
    build: Callable[[Any], Locator]
    accept: Optional[CandidateFilter] = None
    max_candidates: int = 15


class Located(NamedTuple):
    """Visible element returned by :func:`locate`."""

    strategy: str
    locator: Locator


def css(selector: str, name: Optional[str] = None, accept: Optional[CandidateFilter] = None,
        max_candidates: int = 15) -> LocatorStrategy:
    """Strategy matching a CSS (or Playwright pseudo-CSS) selector."""
    return LocatorStrategy(
        name=name or selector,
        build=lambda scope: scope.locator(selector),
        accept=accept,
        max_candidates=max_candidates,
    )


def by_role(role: str, label: Union[str, re.Pattern], name: Optional[str] = None) -> LocatorStrategy:
    """Strategy matching an ARIA role with an accessible name."""
    return LocatorStrategy(
        name=name or f"role={role}[{label}]",
        build=lambda scope: scope.get_by_role(role, name=label),
    )


def by_text(pattern: Union[str, re.Pattern], name: Optional[str] = None) -> LocatorStrategy:
    """Strategy matching visible text."""
    return LocatorStrategy(
        name=name or f"text={pattern}",
        build=lambda scope: scope.get_by_text(pattern),
    )


async def locate(scope: Any, strategies: Sequence[LocatorStrategy]) -> Optional[Located]:
    """Return the first visible element matched by ``strategies``.

    Parameters
    ----------
    scope : Any
        ``Page``, ``Frame`` or ``Locator`` the strategies are built from.
    strategies : Sequence[LocatorStrategy]
        Strategies in priority order.

    Returns
    -------
    Optional[Located]
        The winning strategy name and element, ``None`` when every strategy
        is exhausted.
    """
    for strategy in strategies:
        try:
            candidates = strategy.build(scope)
            count = await candidates.count()
        except Exception as exc:
            logging.debug("Locator strategy %s failed: %s", strategy.name, exc)
            continue
        for index in range(min(count, strategy.max_candidates)):
            candidate = candidates.nth(index)
            try:
                if not await candidate.is_visible():
                    continue
                if strategy.accept is not None and not await strategy.accept(candidate):
                    continue
            except Exception as exc:
                logging.debug("Candidate %s of %s skipped: %s", index, strategy.name, exc)
                continue
            return Located(strategy.name, candidate)
    return None


async def attribute_text(locator: Locator, names: Iterable[str] = ("class", "title", "aria-label")) -> str:
    """Concatenate lower-cased attribute values of an element; missing ones count as empty."""
    values = []
    for attr in names:
        try:
            values.append(await locator.get_attribute(attr) or "")
        except Exception:
            values.append("")
    return " ".join(values).lower()


def keyword_filter(keywords: Iterable[str], names: Iterable[str] = ("class", "title", "aria-label")) -> CandidateFilter:
    """Build a candidate filter accepting elements whose attributes mention any keyword."""
    lowered = tuple(k.lower() for k in keywords)
    attr_names = tuple(names)

    async def _accept(locator: Locator) -> bool:
        combined = await attribute_text(locator, attr_names)
        return any(k in combined for k in lowered)

    return _accept


def fold_label(value: str) -> str:
    """Lower-case ``value`` and strip diacritics (``Procédures`` -> ``procedures``)."""
    decomposed = unicodedata.normalize("NFKD", value or "")
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold().strip()


def label_filter(label: str) -> CandidateFilter:
    """Build a candidate filter accepting elements whose visible text contains ``label``.

    The comparison ignores case and diacritics.
    """
    wanted = fold_label(label)

    async def _accept(locator: Locator) -> bool:
        return wanted in fold_label(await locator.inner_text())

    return _accept
