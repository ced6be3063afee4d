"""Tests for prompt rendering."""

from datetime import datetime

from app.services import prompts


class TestFieldPrompts:
    """Field analysis and category prompts."""

    def test_field_analysis_embeds_field(self, sample_field):
        """Name, crop, area and coordinates are rendered, with the worked cost example."""
        prompt = prompts.build_field_analysis_prompt(sample_field)
        assert "Поле: Северное поле" in prompt
        assert "Культура: Пшеница" in prompt
        assert "Площадь: 10 га" in prompt
        assert "51.17, 71.45" in prompt
        assert "(всего 80,000₸)" in prompt
        assert '"yieldOptimization"' not in prompt

    def test_field_analysis_json_revision(self, sample_field):
        """The json revision asks for the structured keys."""
        prompt = prompts.build_field_analysis_prompt(sample_field, "json")
        assert '"yieldOptimization"' in prompt

    def test_fractional_area(self, sample_field):
        """Fractional areas keep their decimals."""
        sample_field["area"] = 2.5
        prompt = prompts.build_field_analysis_prompt(sample_field)
        assert "Площадь: 2.5 га" in prompt
        assert "(всего 20,000₸)" in prompt

    def test_category_prompt(self, sample_field):
        """The category title replaces the category key."""
        prompt = prompts.build_category_prompt(sample_field, "pesticides")
        assert 'категории "Пестициды и защита"' in prompt
        assert "4-5 конкретных пунктов" in prompt


class TestFeedingPrompts:
    """Feeding plan prompt revisions."""

    def test_json_revision(self, sample_livestock):
        """The json revision asks for perAnimalKg and multiplies by the head count."""
        prompt = prompts.build_feeding_plan_prompt(sample_livestock, "json")
        assert "Животные: 10 голов Коровы" in prompt
        assert '"perAnimalKg"' in prompt
        assert "perAnimalKg * 10" in prompt

    def test_text_revision(self, sample_livestock):
        """The text revision asks for percentage lines."""
        prompt = prompts.build_feeding_plan_prompt(sample_livestock, "text")
        assert "Пшеница: 30%" in prompt
        assert "perAnimalKg" not in prompt


class TestInventoryPrompts:
    """Feed and fertilizer analysis prompts."""

    def test_inventory_line(self):
        """Price and application date are optional parts of the line."""
        item = {"name": "Селитра", "quantity": "200.00", "unit": "кг", "price_per_unit": "180.00",
                "application_date": datetime(2024, 4, 5)}
        assert prompts.format_inventory_line(item) == "Селитра: 200.00 кг по 180.00₸/кг"
        assert prompts.format_inventory_line(item, with_date=True) == (
            "Селитра: 200.00 кг по 180.00₸/кг, внесение: 05.04.2024"
        )
        assert prompts.format_inventory_line({"name": "Сено", "quantity": "50.00", "unit": "кг"}) == "Сено: 50.00 кг"

    def test_iso_date_string(self):
        """Dates stored as ISO strings are reformatted too."""
        assert prompts.format_date("2024-04-05T00:00:00") == "05.04.2024"

    def test_feed_analysis_prompt(self, sample_livestock):
        """The feed list is embedded in the requested format."""
        feeds = [{"name": "Ячмень", "quantity": "100.00", "unit": "кг"}]
        json_prompt = prompts.build_feed_analysis_prompt(sample_livestock, feeds, "json")
        text_prompt = prompts.build_feed_analysis_prompt(sample_livestock, feeds, "text")
        assert "Ячмень: 100.00 кг" in json_prompt
        assert '"nutritionBalance"' in json_prompt
        assert "ОЦЕНКА БАЛАНСА" in text_prompt

    def test_fertilizer_prompt_mentions_area(self, sample_field):
        """The fertilizer prompt ties total amount to the field area."""
        fertilizers = [{"name": "Аммофос", "quantity": "500.00", "unit": "кг"}]
        prompt = prompts.build_fertilizer_analysis_prompt(sample_field, fertilizers)
        assert "Аммофос: 500.00 кг" in prompt
        assert "норма × 10 га" in prompt
        assert '"effectiveness"' in prompt


class TestChatPrompt:
    """Chat system prompt."""

    def test_with_context(self, sample_field, sample_livestock):
        """Counts and one-line summaries of the farm are included."""
        prompt = prompts.build_chat_system_prompt({"fields": [sample_field], "livestock": [sample_livestock]})
        assert "Количество полей: 1" in prompt
        assert "- Северное поле: Пшеница, 10 га" in prompt
        assert "- Коровы: 10 голов" in prompt
        assert "СОКРАТИЧЕСКИЙ МЕТОД" in prompt

    def test_empty_context(self):
        """An empty farm says there is no data."""
        prompt = prompts.build_chat_system_prompt({"fields": [], "livestock": []})
        assert "Количество групп скота: 0" in prompt
        assert "Нет данных" in prompt

    def test_without_context(self):
        """No context block at all when none is given."""
        assert "Контекст пользователя" not in prompts.build_chat_system_prompt()
