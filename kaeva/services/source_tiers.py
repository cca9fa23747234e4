"""Source tier classification.

Maps a URL's host onto one of four trust tiers loaded from
``kaeva/data/source_tiers.yaml``. Tier 1 is checked first; the first tier whose
domain list matches the host exactly, or as a parent domain, wins.
"""

from collections.abc import Iterable
from functools import lru_cache
from pathlib import Path
from urllib.parse import urlparse

import yaml

from kaeva.models import SourceReference, TierInfo
from kaeva.utils.exceptions import ConfigurationError

DEFAULT_TIERS_PATH = Path(__file__).resolve().parent.parent / "data" / "source_tiers.yaml"

UNRANKED_LABEL = "Unranked"
PROMPT_DOMAINS_PER_TIER = 8


class SourceTierTable:
    """Ordered tier table with its domain lists."""

    def __init__(self, tiers: dict[int, TierInfo], domains: dict[int, list[str]]):
        self.tiers = dict(sorted(tiers.items()))
        self.domains = {tier: domains[tier] for tier in self.tiers}
        self._validate()

    @classmethod
    def from_mapping(cls, raw: dict) -> "SourceTierTable":
        """Build a table from the parsed YAML mapping of tier number to tier definition."""
        if not isinstance(raw, dict) or not raw:
            raise ConfigurationError("Source tier table is empty", setting="source_tiers")

        tiers: dict[int, TierInfo] = {}
        domains: dict[int, list[str]] = {}
        for key, definition in raw.items():
            try:
                number = int(key)
                info = TierInfo(
                    tier=number,
                    label=definition["label"],
                    trust=definition.get("trust", ""),
                    weight=definition["weight"],
                )
            except (KeyError, TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"Invalid definition for source tier {key!r}: {e}", setting="source_tiers"
                ) from e
            tiers[number] = info
            domains[number] = [d.strip().lower() for d in definition.get("domains") or []]
        return cls(tiers, domains)

    @classmethod
    def from_yaml(cls, path: Path | str = DEFAULT_TIERS_PATH) -> "SourceTierTable":
        with open(path, encoding="utf-8") as fh:
            return cls.from_mapping(yaml.safe_load(fh))

    def _validate(self) -> None:
        # Tier order decides ties, so a domain listed twice would be silently shadowed.
        seen: dict[str, int] = {}
        for tier, domains in self.domains.items():
            for domain in domains:
                if domain in seen:
                    raise ConfigurationError(
                        f"Domain {domain!r} is listed in tier {seen[domain]} and tier {tier}",
                        setting="source_tiers",
                    )
                seen[domain] = tier

    def classify(self, url: str | None) -> TierInfo | None:
        """Return the tier for ``url``, or None if it is malformed or unranked."""
        host = _hostname(url)
        if not host:
            return None
        for tier, domains in self.domains.items():
            if any(host == d or host.endswith("." + d) for d in domains):
                return self.tiers[tier]
        return None

    def weight_for(self, tier: int | None) -> float | None:
        info = self.tiers.get(tier) if tier is not None else None
        return info.weight if info else None

    def priority_text(self) -> str:
        """Render the tier table as prompt text."""
        lines = ["SOURCE PRIORITY (use this ranking when weighing evidence):", ""]
        for tier, info in self.tiers.items():
            domains = self.domains[tier]
            shown = ", ".join(domains[:PROMPT_DOMAINS_PER_TIER])
            if len(domains) > PROMPT_DOMAINS_PER_TIER:
                shown += "..."
            lines.append(f"TIER {tier} - {info.label} ({info.trust} trust):")
            lines.append(shown)
            lines.append("")
        lines.append(
            "UNRANKED sources: treat with skepticism. Do NOT cite blogs, social media posts, "
            "or unknown sites as primary evidence."
        )
        return "\n".join(lines)

    def annotate(self, source: SourceReference, fallback_host: str | None = None) -> SourceReference:
        """Fill tier, tier label and weight on a source reference.

        ``fallback_host`` is tried when the URL itself does not classify; search
        grounding returns redirect URLs whose title is the publisher's domain.
        """
        info = self.classify(source.url)
        if info is None and fallback_host:
            info = self.classify(f"https://{fallback_host.strip()}")
        if info is None:
            return source.model_copy(update={"tier": None, "tier_label": UNRANKED_LABEL, "weight": None})
        return source.model_copy(update={"tier": info.tier, "tier_label": info.label, "weight": info.weight})


def _hostname(url: str | None) -> str | None:
    if not isinstance(url, str) or not url:
        return None
    try:
        host = urlparse(url.strip()).hostname
    except ValueError:
        return None
    if not host:
        return None
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def assess_sources(sources: Iterable[SourceReference]) -> list[SourceReference]:
    """Order sources best tier first; unranked go last, original order kept within a tier."""
    return sorted(sources, key=lambda s: s.tier if s.tier is not None else 99)


@lru_cache(maxsize=1)
def default_table() -> SourceTierTable:
    return SourceTierTable.from_yaml()


def classify_source(url: str | None) -> TierInfo | None:
    return default_table().classify(url)
