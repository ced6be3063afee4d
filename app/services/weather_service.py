import logging
import requests
from app.core import config
from app.models.schemas import WeatherData

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "Неизвестная локация"


def get_weather_by_coordinates(latitude: float, longitude: float) -> WeatherData:
    """
    Current conditions from OpenWeather, metric units, Russian descriptions.

    Raises RuntimeError with a user-readable message on a missing key, HTTP
    failure or an unexpected payload.
    """
    if not config.OPENWEATHER_API_KEY:
        raise RuntimeError("OPENWEATHER_API_KEY не настроен")

    params = {
        "lat": latitude,
        "lon": longitude,
        "appid": config.OPENWEATHER_API_KEY,
        "units": "metric",
        "lang": "ru",
    }

    try:
        response = requests.get(config.OPENWEATHER_URL, params=params, timeout=config.HTTP_TIMEOUT)
        response.raise_for_status()
        data = response.json()

        main = data["main"]
        conditions = data["weather"][0]
        return WeatherData(
            temperature=round(main["temp"]),
            feels_like=round(main["feels_like"]),
            humidity=main["humidity"],
            pressure=main["pressure"],
            wind_speed=round(data.get("wind", {}).get("speed", 0) * 10) / 10,
            description=conditions["description"],
            icon=conditions["icon"],
            location=data.get("name") or UNKNOWN_LOCATION,
        )
    except Exception as e:
        logger.error(f"Weather lookup failed for ({latitude}, {longitude}): {e}")
        raise RuntimeError(f"Не удалось получить данные о погоде: {e}") from e
