"""
Fallback content for the AI analysis features.

The UI renders every list unconditionally, so whenever a completion fails or
parses to nothing the parsers fall back to the tables below. Two kinds of
tables exist per result type:

* ``*_DEFAULTS``: per-list fill-ins used when a live response was parsed but
  one of its lists came out empty.
* ``fallback_*`` factories: whole payloads used when the completion call
  itself failed.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List
from app.models.schemas import (
    CategoryRecommendation,
    FeedAnalysis,
    FeedLine,
    FertilizerAnalysis,
    FieldAnalysis,
    LivestockFeedingPlan,
)

# ingredient, ration percent, kg per animal per day
DEFAULT_FEEDS = (
    ("Пшеница", 30, 4.5),
    ("Ячмень", 25, 3.8),
    ("Кукуруза", 20, 3.0),
    ("Сено", 15, 2.3),
    ("Витамины", 10, 1.5),
)

CATEGORY_TITLES = {
    "fertilizer": "Удобрения",
    "soil": "Почва",
    "pesticides": "Пестициды и защита",
}

FIELD_ANALYSIS_DEFAULTS = {
    "summary": "Анализ выполнен",
    "recommendations": [
        "Проведите анализ почвы",
        "Планируйте севооборот",
        "Учитывайте погодные условия",
    ],
    "yield_optimization": [
        "Оптимизируйте внесение удобрений",
        "Контролируйте влажность почвы",
    ],
    "risks": ["Следите за погодными условиями"],
    "timeline": "Составьте график работ",
}

FEEDING_PLAN_DEFAULTS = {
    "feeding_schedule": [
        "Кормить 2 раза в день",
        "Утром в 6:00 и вечером в 18:00",
        "Обеспечить постоянный доступ к воде",
    ],
    "nutrition_tips": [
        "Следите за качеством кормов",
        "Адаптируйте рацион по сезону",
    ],
    "cost_savings": [
        "Используйте местные корма - дешевле импортных на 30-40%",
        "Покупайте оптом для экономии 15-20%",
    ],
}

CATEGORY_DEFAULTS = [
    "Проведите анализ перед применением",
    "Следуйте рекомендованным дозировкам",
    "Учитывайте погодные условия",
]

FEED_ANALYSIS_DEFAULTS = {
    "nutrition_balance": ["Проверьте баланс белков и углеводов"],
    "cost_optimization": ["Используйте местные корма для экономии"],
    "warnings": [],
    "suggestions": ["Обратитесь к ветеринару для детальной консультации"],
}

FERTILIZER_ANALYSIS_DEFAULTS = {
    "effectiveness": ["Проверьте соответствие нормам внесения"],
    "cost_optimization": ["Используйте местные удобрения для экономии"],
    "warnings": [],
    "suggestions": ["Проведите анализ почвы перед внесением удобрений"],
}


def round1(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def format_kg(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


def feed_line(ingredient: str, percentage: int, per_animal_kg: float, total_kg: float, count: int) -> FeedLine:
    return FeedLine(
        ingredient=ingredient,
        percentage=percentage,
        amount_per_animal=f"{format_kg(per_animal_kg)} кг/день",
        total_amount=f"{format_kg(total_kg)} кг/день (всего для {count} голов)",
    )


def default_daily_feed(count: int, feeds=DEFAULT_FEEDS) -> List[FeedLine]:
    return [
        feed_line(ingredient, percentage, base, round1(base * count), count)
        for ingredient, percentage, base in feeds
    ]


def fallback_field_analysis() -> FieldAnalysis:
    return FieldAnalysis(
        summary="Поле создано успешно",
        recommendations=list(FIELD_ANALYSIS_DEFAULTS["recommendations"]),
        yield_optimization=list(FIELD_ANALYSIS_DEFAULTS["yield_optimization"]),
        risks=list(FIELD_ANALYSIS_DEFAULTS["risks"]),
        timeline="Составьте детальный график на сезон",
    )


def fallback_feeding_plan(livestock_type: str, count: int) -> LivestockFeedingPlan:
    return LivestockFeedingPlan(
        summary=f"План кормления для {count} {livestock_type}",
        daily_feed=default_daily_feed(count),
        feeding_schedule=[
            "Кормить 2 раза в день: утром и вечером",
            "Обеспечить постоянный доступ к воде",
            "Регулярно проверять состояние животных",
        ],
        nutrition_tips=[
            "Следите за качеством и свежестью кормов",
            "Адаптируйте рацион в зависимости от сезона и продуктивности",
        ],
        cost_savings=list(FEEDING_PLAN_DEFAULTS["cost_savings"]),
    )


def fallback_category_recommendations(category: str) -> CategoryRecommendation:
    return CategoryRecommendation(
        title=CATEGORY_TITLES.get(category, category),
        recommendations=[
            "Проведите профессиональный анализ",
            "Следуйте агрономическим рекомендациям",
            "Учитывайте местные условия",
        ],
    )


def fallback_feed_analysis(livestock_type: str, count: int) -> FeedAnalysis:
    return FeedAnalysis(
        summary=f"Корма добавлены для {count} {livestock_type}",
        **_copy_lists(FEED_ANALYSIS_DEFAULTS),
    )


def fallback_fertilizer_analysis(field_name: str) -> FertilizerAnalysis:
    return FertilizerAnalysis(
        summary=f"Удобрения добавлены для поля {field_name}",
        **_copy_lists(FERTILIZER_ANALYSIS_DEFAULTS),
    )


def empty_feed_analysis() -> FeedAnalysis:
    return FeedAnalysis(
        summary="Добавьте корма для анализа",
        nutrition_balance=[],
        cost_optimization=[],
        warnings=["Корма не добавлены! Добавьте корма для животных"],
        suggestions=["Начните с добавления основных кормов: пшеница, ячмень, сено"],
    )


def empty_fertilizer_analysis() -> FertilizerAnalysis:
    return FertilizerAnalysis(
        summary="Добавьте удобрения для анализа",
        effectiveness=[],
        cost_optimization=[],
        warnings=["Удобрения не добавлены! Добавьте удобрения для поля"],
        suggestions=["Начните с добавления основных удобрений: азот, фосфор, калий"],
    )


def _copy_lists(table: Dict[str, List[str]]) -> Dict[str, List[str]]:
    return {key: list(value) for key, value in table.items()}
