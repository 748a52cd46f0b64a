import uuid
from datetime import date

from app.chat.service.prompt_builder import (
    BREAKFAST_FALLBACK,
    CHECKOUT_FALLBACK,
    PERSONAS,
    ROOM_FALLBACK,
    WIFI_FALLBACK,
    build_system_prompt,
)
from app.hotel.entity.hotel import LocalRecommendation, ToneOfVoice
from fakes import make_hotel


def gem(name):
    return LocalRecommendation(id=uuid.uuid4(), name=name, category="restaurant", description="Great seafood")


def test_includes_hotel_identity_and_facts():
    prompt = build_system_prompt(make_hotel(), "en", "204", ["Extra Towels"])
    assert "Casa Azul in Lisbon, Portugal" in prompt
    assert "Room: 204" in prompt
    assert "WiFi Password: sunshine42" in prompt
    assert "Breakfast: 7:00-10:30" in prompt
    assert "Checkout: 11:00" in prompt


def test_missing_facts_use_fallbacks():
    hotel = make_hotel(wifi_password=None, breakfast_hours=None, checkout_time=None)
    prompt = build_system_prompt(hotel, "en", None, [])
    assert f"WiFi Password: {WIFI_FALLBACK}" in prompt
    assert f"Breakfast: {BREAKFAST_FALLBACK}" in prompt
    assert f"Checkout: {CHECKOUT_FALLBACK}" in prompt
    assert f"Room: {ROOM_FALLBACK}" in prompt


def test_language_instruction_names_the_guest_language():
    prompt = build_system_prompt(make_hotel(), "pt-BR", "204", ["Toalhas Extras"])
    assert "**CRITICAL LANGUAGE INSTRUCTION**" in prompt
    assert "respond ONLY in Portuguese (language code: pt)" in prompt


def test_unknown_language_falls_back_to_english():
    prompt = build_system_prompt(make_hotel(), "xx", "204", [])
    assert "respond ONLY in English" in prompt


def test_services_are_the_exact_allow_list():
    prompt = build_system_prompt(make_hotel(), "en", "204", ["Extra Towels", "Late Checkout"])
    assert '- "Extra Towels"\n- "Late Checkout"' in prompt
    assert "copied EXACTLY" in prompt
    assert "front desk" in prompt


def test_no_services_forbids_the_tool():
    prompt = build_system_prompt(make_hotel(), "en", "204", [])
    assert "Never call create_service_request" in prompt


def test_persona_follows_tone_of_voice():
    hotel = make_hotel(tone_of_voice=ToneOfVoice.FORMAL_BUSINESS)
    prompt = build_system_prompt(hotel, "en", "204", [])
    assert PERSONAS[ToneOfVoice.FORMAL_BUSINESS]["personality"] in prompt
    assert PERSONAS[ToneOfVoice.RELAXED_RESORT]["personality"] not in prompt


def test_local_gems_are_capped_at_ten():
    gems = [gem(f"Place {i}") for i in range(12)]
    prompt = build_system_prompt(make_hotel(), "en", "204", [], gems)
    assert "Place 9 (restaurant): Great seafood" in prompt
    assert "Place 10" not in prompt


def test_today_is_included_when_given():
    prompt = build_system_prompt(make_hotel(), "en", "204", [], today=date(2025, 3, 14))
    assert "TODAY: 2025-03-14" in prompt
    assert "TODAY:" not in build_system_prompt(make_hotel(), "en", "204", [])
