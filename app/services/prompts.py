from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional
from app.services.defaults import CATEGORY_TITLES

FIELD_ANALYSIS_PROMPT = r"""
Ты опытный казахстанский агроном. Дай ПРАКТИЧНЫЕ, ЭКОНОМНЫЕ рекомендации с РЕАЛЬНЫМИ ценами в тенге (₸).

Поле: {name}
Культура: {crop_type}
Площадь: {area} га
Координаты: {latitude}, {longitude} (Казахстан)

ОБЯЗАТЕЛЬНО для каждой рекомендации указывай:
- Стоимость в ₸/га и общие затраты
- Ожидаемый прирост урожая в тоннах
- ROI (возврат инвестиций) в процентах
- Дешевую альтернативу (если есть)

Формат ответа (КРАТКО, по пунктам):
1. Прогноз урожайности: X тонн/га, потенциал: Y тонн/га (+Z%)
2. 3-5 КОНКРЕТНЫХ действий с ценами:
   "Внести азот 60 кг/га в марте-апреле → стоимость 8,000₸/га (всего {example_total}₸) → +20% урожая (+0.5 т/га) → прибыль +50,000₸/га. АЛЬТЕРНАТИВА: Местная аммиачная селитра 5,500₸/га (-30% цена)"
3. 2-3 риска с потерями: "Град в июне → минус 30% урожая (потеря 200,000₸)"
4. График: "Март: посев. Апрель: азот. Май: гербициды. Июль: полив. Сентябрь: уборка"

ВАЖНО: ВСЕ цифры и цены ОБЯЗАТЕЛЬНЫ! Каждый пункт - ОДНО предложение.
"""

FIELD_ANALYSIS_JSON_SUFFIX = r"""
ОБЯЗАТЕЛЬНО верни ответ ТОЛЬКО в формате JSON (без дополнительного текста):
{
  "summary": "прогноз урожайности одним предложением",
  "recommendations": ["действие 1 с ценой", "действие 2"],
  "yieldOptimization": ["как поднять урожай 1", "как поднять урожай 2"],
  "risks": ["риск 1 с потерями в ₸", "риск 2"],
  "timeline": "Март: посев. Апрель: азот. ..."
}
"""

FEEDING_PLAN_JSON_PROMPT = r"""
Ты опытный казахстанский ветеринар-зоотехник. Составь ЭКОНОМНЫЙ и ЭФФЕКТИВНЫЙ план кормления.

Животные: {count} голов {livestock_type}

ОБЯЗАТЕЛЬНО верни ответ ТОЛЬКО в формате JSON (без дополнительного текста):
{{
  "summary": "Краткая сводка плана кормления",
  "dailyFeed": [
    {{
      "ingredient": "название корма",
      "perAnimalKg": число_кг_на_1_голову_в_день,
      "percentage": процент_в_рационе,
      "costPerKg": цена_за_кг_в_тенге_или_null
    }}
  ],
  "feedingSchedule": ["правило 1", "правило 2", "правило 3"],
  "nutritionTips": ["совет 1", "совет 2"],
  "costSavings": ["экономия 1 с ценами в ₸", "экономия 2"]
}}

ВАЖНО:
- Укажи РЕАЛЬНЫЕ количества для типа животного "{livestock_type}"
- perAnimalKg должен быть конкретным числом (например: 4.5, 3.2, 1.8)
- Общее количество корма = perAnimalKg * {count}
- НЕ используй проценты для количества, только для состава рациона
- Цены в тенге (₸), местные казахстанские корма
- 5-7 ингредиентов в рационе
"""

FEEDING_PLAN_TEXT_PROMPT = r"""
Ты опытный казахстанский ветеринар-зоотехник. Составь ЭКОНОМНЫЙ и ЭФФЕКТИВНЫЙ план кормления.

Животные: {count} голов {livestock_type}

Формат ответа (КРАТКО, по пунктам):
1. СОСТАВ КОРМА (5-7 ингредиентов, сумма 100%), каждый с новой строки:
Пшеница: 30%
Ячмень: 25%
2. ГРАФИК: сколько раз в день кормить и в какое время (2-4 пункта)
3. ПИТАНИЕ: советы по витаминам и качеству корма (2-3 пункта)
4. ЭКОНОМИЯ: чем заменить дорогие корма, цены в ₸ (2-5 пунктов)

Каждый пункт - ОДНО короткое предложение. Местные казахстанские корма.
"""

CATEGORY_PROMPT = r"""
Дай КРАТКИЕ рекомендации по категории "{title}" для поля:
Культура: {crop_type}
Площадь: {area} га

Дай 4-5 конкретных пунктов. Каждый пункт - 1 короткое предложение.
Без длинных объяснений, только суть.
"""

FEED_ANALYSIS_PROMPT = r"""
Ты опытный казахстанский ветеринар-зоотехник. ПРОАНАЛИЗИРУЙ текущий рацион кормления и дай ПРАКТИЧНЫЕ советы.

Животные: {count} голов {livestock_type}

ТЕКУЩИЕ КОРМА (введены пользователем):
{inventory}
"""

FEED_ANALYSIS_TEXT_FORMAT = r"""
Дай АНАЛИЗ в формате (КРАТКО, по пунктам):
1. ОЦЕНКА БАЛАНСА: достаточно ли белка, энергии, витаминов? (2-3 пункта)
2. ЭКОНОМИЯ: как снизить затраты без потери качества? (2-3 конкретных совета с ценами в ₸)
3. ПРЕДУПРЕЖДЕНИЯ: что не так или чего не хватает? (1-2 критичных момента)
4. РЕКОМЕНДАЦИИ: что добавить или изменить? (2-3 практичных совета)

Каждый пункт - ОДНО короткое предложение с цифрами.
"""

FEED_ANALYSIS_JSON_FORMAT = r"""
ОБЯЗАТЕЛЬНО верни ответ ТОЛЬКО в формате JSON (без дополнительного текста):
{
  "summary": "Краткая оценка рациона",
  "nutritionBalance": ["оценка баланса белка, энергии, витаминов", "оценка 2"],
  "costOptimization": ["совет по экономии с ценами в ₸", "совет 2"],
  "warnings": ["чего не хватает или что опасно"],
  "suggestions": ["что добавить или изменить", "рекомендация 2"]
}

Каждый пункт - ОДНО короткое предложение с цифрами.
"""

FERTILIZER_ANALYSIS_PROMPT = r"""
Ты опытный казахстанский агроном. ПРОАНАЛИЗИРУЙ план внесения удобрений и дай ПРАКТИЧНЫЕ советы.

Поле: {name}
Культура: {crop_type}
Площадь: {area} га

ТЕКУЩИЕ УДОБРЕНИЯ (введены пользователем):
{inventory}

ВАЖНО: Учитывай площадь поля ({area} га) при оценке количества удобрений.
Норма внесения должна быть в кг/га, а общее количество = норма × {area} га
"""

FERTILIZER_ANALYSIS_TEXT_FORMAT = r"""
Дай АНАЛИЗ в формате (КРАТКО, по пунктам):
1. ЭФФЕКТИВНОСТЬ: правильно ли подобраны удобрения и достаточно ли их? (2-3 пункта)
2. ЭКОНОМИЯ: как снизить затраты, цены в ₸/га (2-3 совета)
3. ПРЕДУПРЕЖДЕНИЯ: риск передозировки или чего не хватает (1-2 пункта)
4. РЕКОМЕНДАЦИИ: что внести дополнительно, в кг/га (2-3 совета)

Каждый пункт - ОДНО короткое предложение с цифрами и ценами в ₸.
"""

FERTILIZER_ANALYSIS_JSON_FORMAT = r"""
ОБЯЗАТЕЛЬНО верни ответ ТОЛЬКО в формате JSON (без дополнительного текста):
{
  "summary": "Краткая оценка плана внесения удобрений",
  "effectiveness": ["оценка 1 с цифрами", "оценка 2"],
  "costOptimization": ["совет по экономии с ценами в ₸/га", "совет 2"],
  "warnings": ["предупреждение 1", "предупреждение 2"],
  "suggestions": ["рекомендация 1 с количеством кг/га", "рекомендация 2"]
}

Каждый пункт - ОДНО короткое предложение с цифрами и ценами в ₸.
"""

CHAT_SYSTEM_PROMPT = r"""
Вы - опытный агроном-консультант AgriAI, который помогает фермерам через наводящие вопросы и индивидуальный подход.
{context}
ВАШ ПОДХОД - СОКРАТИЧЕСКИЙ МЕТОД (через наводящие вопросы):

1. ЗАДАВАЙТЕ НАВОДЯЩИЕ ВОПРОСЫ:
   - Сначала спросите о конкретных деталях ситуации
   - Уточните цели и ограничения
   - Помогите пользователю самому прийти к выводам

2. СТРУКТУРА ОТВЕТА:
   - Начните с 2-3 уточняющих вопросов
   - Дайте краткие рекомендации (3-5 пунктов)
   - Завершите вопросом для размышления

3. ПРИМЕРЫ ХОРОШИХ ВОПРОСОВ:
   - "Какой у вас бюджет на эти работы?"
   - "Когда планируете начать? Какие сроки?"
   - "Какие проблемы у вас были в прошлом сезоне?"
   - "Какую урожайность хотите получить?"

4. СТИЛЬ ОБЩЕНИЯ:
   - Краткие, практичные ответы
   - Каждый пункт - 1 предложение
   - Без лишней теории
   - Максимум 5-7 пунктов на ответ

Отвечайте на русском языке.
"""

CHAT_CONTEXT_BLOCK = r"""
Контекст пользователя:
- Количество полей: {field_count}
- Количество групп скота: {livestock_count}

Данные о полях:
{fields}

Данные о скоте:
{livestock}
"""


def format_number(value: Any) -> str:
    """12.0 -> "12", 12.5 -> "12.5"; anything non-numeric is passed through."""
    try:
        return f"{float(value):g}"
    except (TypeError, ValueError):
        return str(value)


def format_date(value: Any) -> str:
    if isinstance(value, datetime):
        return value.strftime("%d.%m.%Y")
    try:
        return datetime.fromisoformat(str(value)).strftime("%d.%m.%Y")
    except ValueError:
        return str(value)


def format_inventory_line(item: Mapping[str, Any], with_date: bool = False) -> str:
    unit = item.get("unit") or "кг"
    line = f"{item['name']}: {item['quantity']} {unit}"
    if item.get("price_per_unit"):
        line += f" по {item['price_per_unit']}₸/{unit}"
    if with_date and item.get("application_date"):
        line += f", внесение: {format_date(item['application_date'])}"
    return line


def _inventory_block(items: List[Mapping[str, Any]], with_date: bool = False) -> str:
    return "\n".join(format_inventory_line(item, with_date) for item in items)


def build_field_analysis_prompt(field: Mapping[str, Any], response_format: str = "text") -> str:
    prompt = FIELD_ANALYSIS_PROMPT.format(
        name=field["name"],
        crop_type=field["crop_type"],
        area=format_number(field["area"]),
        latitude=field["latitude"],
        longitude=field["longitude"],
        example_total=f"{round(float(field['area']) * 8000):,}",
    )
    if response_format == "json":
        prompt += FIELD_ANALYSIS_JSON_SUFFIX
    return prompt.strip()


def build_feeding_plan_prompt(livestock: Mapping[str, Any], response_format: str = "json") -> str:
    template = FEEDING_PLAN_JSON_PROMPT if response_format == "json" else FEEDING_PLAN_TEXT_PROMPT
    return template.format(
        livestock_type=livestock["type"],
        count=livestock["count"],
    ).strip()


def build_category_prompt(field: Mapping[str, Any], category: str) -> str:
    return CATEGORY_PROMPT.format(
        title=CATEGORY_TITLES.get(category, category),
        crop_type=field["crop_type"],
        area=format_number(field["area"]),
    ).strip()


def build_feed_analysis_prompt(
    livestock: Mapping[str, Any],
    feeds: List[Mapping[str, Any]],
    response_format: str = "json",
) -> str:
    prompt = FEED_ANALYSIS_PROMPT.format(
        livestock_type=livestock["type"],
        count=livestock["count"],
        inventory=_inventory_block(feeds),
    )
    prompt += FEED_ANALYSIS_JSON_FORMAT if response_format == "json" else FEED_ANALYSIS_TEXT_FORMAT
    return prompt.strip()


def build_fertilizer_analysis_prompt(
    field: Mapping[str, Any],
    fertilizers: List[Mapping[str, Any]],
    response_format: str = "json",
) -> str:
    prompt = FERTILIZER_ANALYSIS_PROMPT.format(
        name=field["name"],
        crop_type=field["crop_type"],
        area=format_number(field["area"]),
        inventory=_inventory_block(fertilizers, with_date=True),
    )
    prompt += FERTILIZER_ANALYSIS_JSON_FORMAT if response_format == "json" else FERTILIZER_ANALYSIS_TEXT_FORMAT
    return prompt.strip()


def build_chat_system_prompt(user_context: Optional[Dict[str, List[Mapping[str, Any]]]] = None) -> str:
    context = ""
    if user_context is not None:
        fields = user_context.get("fields") or []
        livestock = user_context.get("livestock") or []
        context = CHAT_CONTEXT_BLOCK.format(
            field_count=len(fields),
            livestock_count=len(livestock),
            fields="\n".join(
                f"- {f['name']}: {f['crop_type']}, {format_number(f['area'])} га" for f in fields
            ) or "Нет данных",
            livestock="\n".join(
                f"- {l['type']}: {l['count']} голов" for l in livestock
            ) or "Нет данных",
        )
    return CHAT_SYSTEM_PROMPT.format(context=context).strip()
