import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional
from app.core import config
from app.models.schemas import (
    CategoryRecommendation,
    FeedAnalysis,
    FertilizerAnalysis,
    FieldAnalysis,
    FieldRecommendations,
    LivestockFeedingPlan,
)
from app.services import gemini_service, prompts, response_parser
from app.services.defaults import (
    empty_feed_analysis,
    empty_fertilizer_analysis,
    fallback_category_recommendations,
    fallback_feed_analysis,
    fallback_feeding_plan,
    fallback_fertilizer_analysis,
    fallback_field_analysis,
)

logger = logging.getLogger(__name__)

CHAT_APOLOGY = "Извините, не могу ответить на этот вопрос."


async def _complete(prompt: str, **kwargs) -> str:
    # requests is blocking; keep it off the event loop
    return await asyncio.to_thread(gemini_service.generate_text, prompt, **kwargs)


async def analyze_field(field: Mapping[str, Any]) -> FieldAnalysis:
    try:
        prompt = prompts.build_field_analysis_prompt(field, config.PROMPT_RESPONSE_FORMAT)
        text = await _complete(prompt)
        return response_parser.parse_field_analysis(text)
    except Exception as e:
        logger.error(f"Field analysis failed for '{field.get('name')}': {e}")
        return fallback_field_analysis()


async def generate_feeding_plan(livestock: Mapping[str, Any]) -> LivestockFeedingPlan:
    try:
        prompt = prompts.build_feeding_plan_prompt(livestock, config.PROMPT_RESPONSE_FORMAT)
        text = await _complete(prompt)
        return response_parser.parse_feeding_plan(
            text,
            livestock["type"],
            livestock["count"],
            kg_per_percent=config.FEED_KG_PER_PERCENT,
        )
    except Exception as e:
        logger.error(f"Feeding plan generation failed for {livestock.get('type')}: {e}")
        return fallback_feeding_plan(livestock["type"], livestock["count"])


async def get_field_recommendations(field: Mapping[str, Any], category: str) -> CategoryRecommendation:
    try:
        text = await _complete(prompts.build_category_prompt(field, category))
        return response_parser.parse_category_recommendations(text, category)
    except Exception as e:
        logger.error(f"Recommendations ({category}) failed for '{field.get('name')}': {e}")
        return fallback_category_recommendations(category)


async def get_all_field_recommendations(field: Mapping[str, Any]) -> FieldRecommendations:
    """All categories requested concurrently; each one degrades to its own fallback."""
    results = await asyncio.gather(
        *(get_field_recommendations(field, category) for category in config.FIELD_CATEGORIES)
    )
    return FieldRecommendations(**dict(zip(config.FIELD_CATEGORIES, results)))


async def analyze_feeding_data(livestock: Mapping[str, Any], feeds: List[Mapping[str, Any]]) -> FeedAnalysis:
    if not feeds:
        return empty_feed_analysis()
    try:
        prompt = prompts.build_feed_analysis_prompt(livestock, feeds, config.PROMPT_RESPONSE_FORMAT)
        text = await _complete(prompt)
        return response_parser.parse_feed_analysis(text, livestock["type"], livestock["count"])
    except Exception as e:
        logger.error(f"Feed analysis failed for livestock {livestock.get('id')}: {e}")
        return fallback_feed_analysis(livestock["type"], livestock["count"])


async def analyze_fertilizer_data(field: Mapping[str, Any], fertilizers: List[Mapping[str, Any]]) -> FertilizerAnalysis:
    if not fertilizers:
        return empty_fertilizer_analysis()
    try:
        prompt = prompts.build_fertilizer_analysis_prompt(field, fertilizers, config.PROMPT_RESPONSE_FORMAT)
        text = await _complete(prompt)
        return response_parser.parse_fertilizer_analysis(text, field["name"])
    except Exception as e:
        logger.error(f"Fertilizer analysis failed for field {field.get('id')}: {e}")
        return fallback_fertilizer_analysis(field["name"])


async def chat_with_ai(
    messages: List[Mapping[str, str]],
    user_context: Optional[Dict[str, List[Mapping[str, Any]]]] = None,
) -> str:
    """Reply to the conversation. Unlike the analyses, chat failures propagate as RuntimeError."""
    history = [{"role": m["role"], "content": m["content"]} for m in messages]
    try:
        text = await asyncio.to_thread(
            gemini_service.generate_text,
            system_prompt=prompts.build_chat_system_prompt(user_context),
            messages=history,
            temperature=0.7,
        )
    except Exception as e:
        logger.error(f"Chat completion failed: {e}", exc_info=True)
        raise RuntimeError(f"Ошибка при общении с AI: {e}") from e
    return text.strip() or CHAT_APOLOGY
