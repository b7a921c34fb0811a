# core/services/insights.py
import asyncio
import logging
from typing import Any, Dict, Optional

from langchain_openai import ChatOpenAI
from langchain_core.messages import HumanMessage, SystemMessage

from app.config import settings
from ..models.domain import FarmerProfile, WeatherSnapshot

SYSTEM_PROMPT = (
    "You are KisanMitr, an agricultural advisor for Indian smallholder farmers. "
    "Give practical, specific advice. Keep it short and farmer-friendly. "
    "Avoid technical jargon."
)


def build_prompt(
    profile: FarmerProfile,
    pincode: Optional[str],
    weather: Optional[WeatherSnapshot] = None,
) -> str:
    lines = [
        "A farmer has just completed onboarding:",
        f"- Crop: {profile.crop_name}",
        f"- Soil type: {profile.soil_type}",
        f"- Sowing date: {profile.sowing_date.isoformat()}",
        f"- Irrigation: {profile.irrigation_method.value}",
    ]
    if profile.farm_size is not None:
        lines.append(f"- Farm size: {profile.farm_size} hectares")
    if profile.farming_experience is not None:
        lines.append(f"- Experience: {profile.farming_experience} years")
    if pincode:
        lines.append(f"- Pincode: {pincode}")
    if weather is not None:
        lines.append(
            f"- Current weather: {weather.temp}°C, {weather.humidity}% humidity, {weather.description}"
        )
    lines += [
        "",
        "Provide:",
        "1. Crop-specific recommendations for the current growth stage",
        "2. Irrigation advice for this soil and method",
        "3. Weather-based precautions",
        "4. Expected harvest timeline",
    ]
    return "\n".join(lines)


class InsightsService:
    """Optional LLM crop insights; returns None when no model is configured."""

    def __init__(self, llm: Any = None, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        if llm is None and settings.OPENAI_API_KEY:
            llm = ChatOpenAI(
                model=settings.OPENAI_MODEL,
                api_key=settings.OPENAI_API_KEY,
                temperature=0.3,
                timeout=30,
            )
        self.llm = llm

    @property
    def enabled(self) -> bool:
        return self.llm is not None

    async def crop_insights(
        self,
        profile: FarmerProfile,
        pincode: Optional[str] = None,
        weather: Optional[WeatherSnapshot] = None,
    ) -> Optional[Dict[str, Any]]:
        if not self.enabled:
            self.logger.debug("Insights disabled (no OPENAI_API_KEY)")
            return None

        messages = [SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=build_prompt(profile, pincode, weather))]
        try:
            # ChatOpenAI.invoke is blocking
            resp = await asyncio.to_thread(self.llm.invoke, messages)
        except Exception as e:
            self.logger.warning("Insight generation failed for %s: %s", profile.user_id, e)
            return None

        text = (getattr(resp, "content", None) or str(resp)).strip()
        if not text:
            return None
        return {"text": text, "model": getattr(self.llm, "model_name", settings.OPENAI_MODEL)}
