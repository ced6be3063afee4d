import sys
import json
from typing import Any, Dict
from dataclasses import dataclass, asdict
from app.core import config
from app.services import gemini_service, prompts, response_parser


@dataclass
class FieldInputs:
    name: str
    crop_type: str
    area: float
    latitude: float
    longitude: float


@dataclass
class LivestockInputs:
    type: str
    count: int


def safe_input(prompt: str, default: str) -> str:
    try:
        v = input(f"{prompt} [{default}]: ").strip()
        return v if v != "" else default
    except EOFError:
        return default


def collect_field_inputs() -> FieldInputs:
    name = safe_input("Field name", "Северное поле")
    crop = safe_input("Crop type", "Пшеница")
    area = float(safe_input("Area (ha)", "10"))
    lat = float(safe_input("Latitude", "51.17"))
    lon = float(safe_input("Longitude", "71.45"))
    return FieldInputs(name, crop, area, lat, lon)


def collect_livestock_inputs() -> LivestockInputs:
    kind = safe_input("Livestock type", "Коровы")
    count = int(safe_input("Head count", "10"))
    return LivestockInputs(kind, count)


def run_field(field: Dict[str, Any]) -> Dict[str, Any]:
    print("\n[Stage 1/2] Analyzing field...")
    text = gemini_service.generate_text(prompts.build_field_analysis_prompt(field, config.PROMPT_RESPONSE_FORMAT))
    analysis = response_parser.parse_field_analysis(text)
    print("✓ Field analysis complete")

    print("\n[Stage 2/2] Fetching recommendations by category...")
    recommendations = {}
    for category in config.FIELD_CATEGORIES:
        text = gemini_service.generate_text(prompts.build_category_prompt(field, category))
        recommendations[category] = response_parser.parse_category_recommendations(text, category).model_dump(by_alias=True)

    return {"analysis": analysis.model_dump(by_alias=True), "recommendations": recommendations}


def run_livestock(livestock: Dict[str, Any]) -> Dict[str, Any]:
    print("\n[Stage 1/1] Building feeding plan...")
    text = gemini_service.generate_text(prompts.build_feeding_plan_prompt(livestock, config.PROMPT_RESPONSE_FORMAT))
    plan = response_parser.parse_feeding_plan(text, livestock["type"], livestock["count"])
    return {"feedingPlan": plan.model_dump(by_alias=True)}


def main():
    print("=== AgriAI Console Advisor ===")
    mode = safe_input("Advise on (field/livestock)", "field").lower()

    if not config.GEMINI_API_KEY:
        print("Error: GEMINI_API_KEY environment variable not set.")
        sys.exit(1)

    try:
        if mode.startswith("l"):
            output = run_livestock(asdict(collect_livestock_inputs()))
        else:
            output = run_field(asdict(collect_field_inputs()))
    except Exception as e:
        print(f"Error getting advice: {e}")
        sys.exit(1)

    print("\n" + "="*80)
    print("AGRIAI ADVICE")
    print("="*80)
    print(json.dumps(output, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
