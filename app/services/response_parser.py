"""
Turn free-form completion text into the structured AI result models.

Two response conventions are in circulation: newer prompts ask the model for a
strict JSON object, older ones for labeled lines ("Пшеница: 30%", numbered
lists, sections with prices). Every parser tries the JSON strategy first and
then falls back to line heuristics, so both conventions keep working.

Public ``parse_*`` functions never raise. Anything unexpected is logged and the
kind-specific fallback payload from ``app.services.defaults`` is returned.
"""
import json
import logging
import math
import re
from functools import wraps
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence

from app.core.config import FEED_KG_PER_PERCENT
from app.models.schemas import (
    CategoryRecommendation,
    FeedAnalysis,
    FeedLine,
    FertilizerAnalysis,
    FieldAnalysis,
    LivestockFeedingPlan,
)
from app.services.defaults import (
    CATEGORY_DEFAULTS,
    CATEGORY_TITLES,
    DEFAULT_FEEDS,
    FEED_ANALYSIS_DEFAULTS,
    FEEDING_PLAN_DEFAULTS,
    FERTILIZER_ANALYSIS_DEFAULTS,
    FIELD_ANALYSIS_DEFAULTS,
    default_daily_feed,
    fallback_category_recommendations,
    fallback_feed_analysis,
    fallback_feeding_plan,
    fallback_fertilizer_analysis,
    fallback_field_analysis,
    feed_line,
    round1,
)

logger = logging.getLogger(__name__)

NUMBERED_RE = re.compile(r"^\d+\.")
BULLET_RE = re.compile(r"^[-•*]")
LIST_MARKER_RE = re.compile(r"^(?:\d+[.)]|[-•*])\s*")
LEADING_PERCENT_RE = re.compile(r"^\d+\s*%")
NUMBER_RE = re.compile(r"-?\d+(?:[.,]\d+)?")
# "<label>: <int>%"; the label is bounded so long letter runs stay linear
PERCENT_FEED_RE = re.compile(r"([A-Za-zА-Яа-яЁё\s]{1,60}?):\s*(\d{1,4})\s*%")

SUM_LABELS = {"итого", "всего", "сумма", "total"}

MAX_DAILY_FEED = 7

CURRENCY_KEYWORDS = ("₸", "тенге")
COST_KEYWORDS = CURRENCY_KEYWORDS + (
    "экономи", "замен", "дешев", "альтернатив", "roi", "рентабельн", "выгод", "сбереж",
)
SCHEDULE_KEYWORDS = ("раз", "график", "время", "утр", "вечер", "кормлени")
ANALYSIS_COST_KEYWORDS = CURRENCY_KEYWORDS + ("эконом", "затрат", "дешевле")


class BucketRule(NamedTuple):
    name: str
    predicate: Callable[[str], bool]
    limit: int


def has_any(line: str, keywords: Iterable[str]) -> bool:
    lower = line.lower()
    return any(keyword in lower for keyword in keywords)


# Generic helpers

def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Parse the widest {...} span in `text`, ignoring any prose around it."""
    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        data = json.loads(text[start:end + 1])
    except (ValueError, RecursionError) as e:
        logger.warning(f"Could not decode JSON block from completion: {e}")
        return None
    return data if isinstance(data, dict) else None


def split_lines(text: str) -> List[str]:
    return [line.strip() for line in (text or "").splitlines() if line.strip()]


def clean_line(line: str) -> str:
    line = line.replace("**", "").strip()
    return LIST_MARKER_RE.sub("", line).strip()


def extract_list_items(text: str, limit: int = 5) -> List[str]:
    items = []
    for line in split_lines(text):
        line = line.replace("**", "").strip()
        if not (NUMBERED_RE.match(line) or BULLET_RE.match(line)):
            continue
        item = clean_line(line)
        if item:
            items.append(item)
        if len(items) == limit:
            break
    return items


def classify_lines(lines: Sequence[str], rules: Sequence[BucketRule]) -> Dict[str, List[str]]:
    """
    Sort lines into buckets, first matching rule wins.

    Rules run top to bottom over a shrinking candidate pool: every line a rule
    matches leaves the pool, even if the rule's bucket is already full, so no
    line can land in two buckets.
    """
    pool = list(lines)
    buckets: Dict[str, List[str]] = {}
    for rule in rules:
        flags = [rule.predicate(line) for line in pool]
        buckets[rule.name] = [line for line, hit in zip(pool, flags) if hit][:rule.limit]
        pool = [line for line, hit in zip(pool, flags) if not hit]
    return buckets


def is_composition_line(line: str) -> bool:
    # only bare ration entries; "Экономия: 20% при закупке..." is still advice
    return bool(LEADING_PERCENT_RE.match(line) or PERCENT_FEED_RE.fullmatch(line))


def candidate_lines(text: str, min_length: int = 6) -> List[str]:
    """Cleaned lines worth classifying: no section headers, no ration lines."""
    lines = []
    for raw in split_lines(text):
        line = clean_line(raw)
        if len(line) < min_length or line.endswith(":"):
            continue
        if is_composition_line(line):
            continue
        lines.append(line)
    return lines


def parse_percentage_feeds(
    text: str,
    count: int,
    kg_per_percent: float = FEED_KG_PER_PERCENT,
    limit: int = MAX_DAILY_FEED,
) -> List[FeedLine]:
    lines = []
    for match in PERCENT_FEED_RE.finditer(text or ""):
        ingredient = " ".join(match.group(1).split())
        if not ingredient or ingredient.lower() in SUM_LABELS:
            continue
        percentage = min(int(match.group(2)), 100)
        per_animal = percentage * kg_per_percent
        lines.append(feed_line(ingredient, percentage, round1(per_animal), round1(per_animal * count), count))
        if len(lines) == limit:
            break
    return lines


def first_successful(text: str, strategies: Sequence[Callable[[str], Any]]) -> Any:
    for strategy in strategies:
        result = strategy(text)
        if result is not None:
            return result
    return None


def never_raises(fallback: Callable[..., Any]):
    def decorator(parse):
        @wraps(parse)
        def wrapper(text, *args, **kwargs):
            try:
                return parse(text if isinstance(text, str) else "", *args, **kwargs)
            except Exception:
                logger.exception(f"{parse.__name__} failed, returning fallback payload")
                return fallback(*args, **kwargs)
        return wrapper
    return decorator


def _json_payload(text: str, keys: Iterable[str]) -> Optional[Dict[str, Any]]:
    data = extract_json_object(text)
    if data and any(key in data for key in keys):
        return data
    return None


def _string_list(value: Any, limit: int) -> List[str]:
    if not isinstance(value, list):
        return []
    items = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, (str, int, float)):
            continue
        item = str(item).strip()
        if item:
            items.append(item)
    return items[:limit]


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        match = NUMBER_RE.search(str(value or ""))
        if not match:
            return 0.0
        number = float(match.group(0).replace(",", "."))
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def _to_percentage(value: Any) -> int:
    return max(0, min(100, int(round(_to_float(value)))))


def _or_default(items: List[str], default: List[str]) -> List[str]:
    return items if items else list(default)


# Field analysis

FIELD_ANALYSIS_KEYS = ("summary", "recommendations", "yieldOptimization", "risks", "timeline")


def _field_analysis_from_json(text: str, defaults: Dict[str, Any]) -> Optional[FieldAnalysis]:
    data = _json_payload(text, FIELD_ANALYSIS_KEYS)
    if data is None:
        return None
    return FieldAnalysis(
        summary=str(data.get("summary") or defaults["summary"]),
        recommendations=_or_default(_string_list(data.get("recommendations"), 5), defaults["recommendations"]),
        yield_optimization=_or_default(_string_list(data.get("yieldOptimization"), 3), defaults["yield_optimization"]),
        risks=_or_default(_string_list(data.get("risks"), 3), defaults["risks"]),
        timeline=str(data.get("timeline") or defaults["timeline"]),
    )


def _field_analysis_from_lines(text: str, defaults: Dict[str, Any]) -> FieldAnalysis:
    lines = [line.replace("**", "").strip() for line in split_lines(text)]
    lines = [line for line in lines if line]
    head = lines[1:6]

    recommendations = [
        clean_line(line) for line in head
        if NUMBERED_RE.match(line) or has_any(line, ("рекомендац",))
    ]
    yield_optimization = [clean_line(line) for line in lines[1:4] if has_any(line, ("урожай", "внос", "внес"))]
    risks = [clean_line(line) for line in lines if has_any(line, ("риск", "опасн"))][:3]
    timeline = next((clean_line(line) for line in lines if has_any(line, ("график", "сезон"))), None)

    return FieldAnalysis(
        summary=clean_line(lines[0]) if lines else defaults["summary"],
        recommendations=_or_default([r for r in recommendations if r], defaults["recommendations"]),
        yield_optimization=_or_default([y for y in yield_optimization if y], defaults["yield_optimization"]),
        risks=_or_default([r for r in risks if r], defaults["risks"]),
        timeline=timeline or defaults["timeline"],
    )


@never_raises(lambda defaults=FIELD_ANALYSIS_DEFAULTS: fallback_field_analysis())
def parse_field_analysis(text: str, defaults: Dict[str, Any] = FIELD_ANALYSIS_DEFAULTS) -> FieldAnalysis:
    return first_successful(text, (
        lambda t: _field_analysis_from_json(t, defaults),
        lambda t: _field_analysis_from_lines(t, defaults),
    ))


# Feeding plan

FEEDING_PLAN_KEYS = ("dailyFeed", "feedingSchedule", "nutritionTips", "costSavings")

FEEDING_TEXT_RULES = (
    BucketRule("cost_savings", lambda line: has_any(line, COST_KEYWORDS), 5),
    BucketRule("feeding_schedule", lambda line: has_any(line, SCHEDULE_KEYWORDS), 4),
    BucketRule("nutrition_tips", lambda line: len(line) > 15, 3),
)


def _feeding_plan_from_json(
    text: str,
    livestock_type: str,
    count: int,
    defaults: Dict[str, List[str]],
    feeds,
) -> Optional[LivestockFeedingPlan]:
    data = _json_payload(text, FEEDING_PLAN_KEYS)
    if data is None:
        return None

    daily_feed = []
    raw_feed = data.get("dailyFeed")
    for item in (raw_feed if isinstance(raw_feed, list) else [])[:MAX_DAILY_FEED]:
        if not isinstance(item, dict):
            continue
        per_animal = _to_float(item.get("perAnimalKg"))
        daily_feed.append(feed_line(
            str(item.get("ingredient") or "Неизвестно").strip(),
            _to_percentage(item.get("percentage")),
            per_animal,
            round1(per_animal * count),
            count,
        ))

    return LivestockFeedingPlan(
        summary=str(data.get("summary") or f"План кормления для {count} {livestock_type}"),
        daily_feed=daily_feed or default_daily_feed(count, feeds),
        feeding_schedule=_or_default(_string_list(data.get("feedingSchedule"), 4), defaults["feeding_schedule"]),
        nutrition_tips=_or_default(_string_list(data.get("nutritionTips"), 3), defaults["nutrition_tips"]),
        cost_savings=_or_default(_string_list(data.get("costSavings"), 5), defaults["cost_savings"]),
    )


def _feeding_plan_from_lines(
    text: str,
    livestock_type: str,
    count: int,
    defaults: Dict[str, List[str]],
    feeds,
    kg_per_percent: float,
) -> LivestockFeedingPlan:
    daily_feed = parse_percentage_feeds(text, count, kg_per_percent)
    buckets = classify_lines(candidate_lines(text), FEEDING_TEXT_RULES)

    return LivestockFeedingPlan(
        summary=f"План кормления для {count} {livestock_type}",
        daily_feed=daily_feed or default_daily_feed(count, feeds),
        feeding_schedule=_or_default(buckets["feeding_schedule"], defaults["feeding_schedule"]),
        nutrition_tips=_or_default(buckets["nutrition_tips"], defaults["nutrition_tips"]),
        cost_savings=_or_default(buckets["cost_savings"], defaults["cost_savings"]),
    )


@never_raises(lambda livestock_type, count, **_: fallback_feeding_plan(livestock_type, count))
def parse_feeding_plan(
    text: str,
    livestock_type: str,
    count: int,
    defaults: Dict[str, List[str]] = FEEDING_PLAN_DEFAULTS,
    feeds=DEFAULT_FEEDS,
    kg_per_percent: float = FEED_KG_PER_PERCENT,
) -> LivestockFeedingPlan:
    return first_successful(text, (
        lambda t: _feeding_plan_from_json(t, livestock_type, count, defaults, feeds),
        lambda t: _feeding_plan_from_lines(t, livestock_type, count, defaults, feeds, kg_per_percent),
    ))


# Category recommendations

@never_raises(lambda category, **_: fallback_category_recommendations(category))
def parse_category_recommendations(
    text: str,
    category: str,
    defaults: List[str] = CATEGORY_DEFAULTS,
) -> CategoryRecommendation:
    return CategoryRecommendation(
        title=CATEGORY_TITLES.get(category, category),
        recommendations=_or_default(extract_list_items(text, 5), defaults),
    )


# Feed and fertilizer analysis

FEED_ANALYSIS_RULES = (
    BucketRule("cost_optimization", lambda line: has_any(line, ANALYSIS_COST_KEYWORDS), 3),
    BucketRule("warnings", lambda line: has_any(
        line, ("предупр", "не хватает", "недостат", "опасн", "дефицит", "избыт")), 2),
    BucketRule("nutrition_balance", lambda line: has_any(
        line, ("баланс", "белок", "белк", "энерг", "витамин")), 3),
    BucketRule("suggestions", lambda line: has_any(
        line, ("рекоменд", "добав", "измени", "совет")), 3),
)

FERTILIZER_ANALYSIS_RULES = (
    BucketRule("cost_optimization", lambda line: has_any(line, ANALYSIS_COST_KEYWORDS), 3),
    BucketRule("warnings", lambda line: has_any(
        line, ("предупр", "передоз", "не хватает", "недостат", "опасн", "избыт")), 2),
    BucketRule("effectiveness", lambda line: has_any(
        line, ("эффект", "правильно", "подобран", "достаточ")), 3),
    BucketRule("suggestions", lambda line: has_any(
        line, ("рекоменд", "добав", "измени", "внест", "внесит")), 3),
)

LIST_LIMITS = {
    "nutrition_balance": 3,
    "effectiveness": 3,
    "cost_optimization": 3,
    "warnings": 2,
    "suggestions": 3,
}


def _analysis_from_json(text: str, json_keys: Dict[str, str]) -> Optional[Dict[str, Any]]:
    data = _json_payload(text, ("summary",) + tuple(json_keys))
    if data is None:
        return None
    fields = {
        name: _string_list(data.get(key), LIST_LIMITS[name])
        for key, name in json_keys.items()
    }
    fields["summary"] = str(data.get("summary") or "")
    return fields


def _analysis_from_lines(text: str, rules: Sequence[BucketRule]) -> Dict[str, Any]:
    fields: Dict[str, Any] = classify_lines(candidate_lines(text), rules)
    fields["summary"] = ""
    return fields


def _bucketed_analysis(
    text: str,
    json_keys: Dict[str, str],
    rules: Sequence[BucketRule],
    defaults: Dict[str, List[str]],
    summary: str,
) -> Dict[str, Any]:
    fields = first_successful(text, (
        lambda t: _analysis_from_json(t, json_keys),
        lambda t: _analysis_from_lines(t, rules),
    ))
    for name, default in defaults.items():
        fields[name] = _or_default(fields.get(name) or [], default)
    fields["summary"] = fields["summary"] or summary
    return fields


@never_raises(lambda livestock_type, count, **_: fallback_feed_analysis(livestock_type, count))
def parse_feed_analysis(
    text: str,
    livestock_type: str,
    count: int,
    defaults: Dict[str, List[str]] = FEED_ANALYSIS_DEFAULTS,
) -> FeedAnalysis:
    fields = _bucketed_analysis(
        text,
        {
            "nutritionBalance": "nutrition_balance",
            "costOptimization": "cost_optimization",
            "warnings": "warnings",
            "suggestions": "suggestions",
        },
        FEED_ANALYSIS_RULES,
        defaults,
        f"Анализ кормления для {count} {livestock_type}",
    )
    return FeedAnalysis(**fields)


@never_raises(lambda field_name, **_: fallback_fertilizer_analysis(field_name))
def parse_fertilizer_analysis(
    text: str,
    field_name: str,
    defaults: Dict[str, List[str]] = FERTILIZER_ANALYSIS_DEFAULTS,
) -> FertilizerAnalysis:
    fields = _bucketed_analysis(
        text,
        {
            "effectiveness": "effectiveness",
            "costOptimization": "cost_optimization",
            "warnings": "warnings",
            "suggestions": "suggestions",
        },
        FERTILIZER_ANALYSIS_RULES,
        defaults,
        f"Анализ удобрений для поля {field_name}",
    )
    return FertilizerAnalysis(**fields)
