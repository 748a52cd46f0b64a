# app/chat/service/prompt_builder.py
from datetime import date
from typing import Optional, Sequence

from app.chat.entity.chat import normalize_language
from app.hotel.entity.hotel import Hotel, LocalRecommendation, ToneOfVoice

MAX_LOCAL_GEMS = 10

LANGUAGE_NAMES = {
    "en": "English",
    "pt": "Portuguese",
    "es": "Spanish",
    "de": "German",
    "fr": "French",
    "it": "Italian",
}

PERSONAS = {
    ToneOfVoice.RELAXED_RESORT: {
        "personality": "You are warm, easy-going and friendly, like a beach resort concierge who knows every guest by name.",
        "style": "Keep it casual and relaxed. Short sentences, a light touch of enthusiasm, the occasional emoji.",
        "examples": [
            "No worries at all, I'll get fresh towels sent right over! 🌴",
            "Sunset at the pier is a must, grab a table around 6pm.",
        ],
    },
    ToneOfVoice.FORMAL_BUSINESS: {
        "personality": "You are a polished, discreet professional who values the guest's time.",
        "style": "Use formal, precise language. No slang and no emojis. Lead with the answer.",
        "examples": [
            "Certainly. Your late checkout request has been forwarded to reception.",
            "The business centre on the first floor is available until 22:00.",
        ],
    },
    ToneOfVoice.BOUTIQUE_CHIC: {
        "personality": "You are stylish and personable, with an insider's taste for the city's best spots.",
        "style": "Sophisticated but approachable. Curate rather than list, and add a personal touch.",
        "examples": [
            "Lovely choice. I've asked housekeeping to bring a few extra pillows.",
            "For dinner, the little wine bar around the corner is our guests' favourite secret.",
        ],
    },
    ToneOfVoice.FAMILY_FRIENDLY: {
        "personality": "You are cheerful, patient and helpful to parents and kids alike.",
        "style": "Use simple, warm language that works for all ages. Suggest kid-friendly options first.",
        "examples": [
            "Of course! Extra blankets are on their way for the little ones.",
            "The aquarium opens at 9am and is perfect for a morning with the kids!",
        ],
    },
}

WIFI_FALLBACK = "Ask reception"
BREAKFAST_FALLBACK = "Check with reception"
CHECKOUT_FALLBACK = "12:00"
ROOM_FALLBACK = "Unknown"


def _persona_block(tone: ToneOfVoice) -> str:
    persona = PERSONAS.get(tone, PERSONAS[ToneOfVoice.RELAXED_RESORT])
    examples = "\n".join(f'- "{example}"' for example in persona["examples"])
    return (
        f"PERSONALITY: {persona['personality']}\n"
        f"STYLE: {persona['style']}\n"
        f"EXAMPLES OF HOW YOU SOUND:\n{examples}"
    )


def _language_block(language: str) -> str:
    name = LANGUAGE_NAMES[language]
    return (
        "**CRITICAL LANGUAGE INSTRUCTION**:\n"
        f"You MUST respond ONLY in {name} (language code: {language}).\n"
        f"Every single response must be in {name}. No exceptions.\n"
        "Do not switch languages even if the guest writes in another language."
    )


def _services_block(service_names: Sequence[str]) -> str:
    if not service_names:
        return (
            "AVAILABLE SERVICES: none are currently offered through chat.\n"
            "- Never call create_service_request. Politely suggest contacting the front desk instead."
        )
    allowed = "\n".join(f'- "{name}"' for name in service_names)
    return (
        "AVAILABLE SERVICES (the only values allowed for create_service_request.requestType):\n"
        f"{allowed}\n"
        "- When the guest asks for one of these, confirm and call create_service_request with the "
        "service name copied EXACTLY as written above.\n"
        "- If the guest asks for anything not on this list, do NOT call the tool. Apologise, say it "
        "is not available through chat and suggest contacting the front desk."
    )


def _gems_block(recommendations: Sequence[LocalRecommendation]) -> str:
    gems = list(recommendations)[:MAX_LOCAL_GEMS]
    if not gems:
        return "LOCAL GEMS: none curated yet. Offer general suggestions and recommend checking with staff."
    lines = []
    for gem in gems:
        line = f"- {gem.name} ({gem.category})"
        if gem.description:
            line += f": {gem.description}"
        lines.append(line)
    return "LOCAL GEMS (curated by the hotel):\n" + "\n".join(lines)


def build_system_prompt(
    hotel: Hotel,
    guest_language: Optional[str],
    room_number: Optional[str],
    service_names: Sequence[str],
    recommendations: Sequence[LocalRecommendation] = (),
    today: Optional[date] = None,
) -> str:
    """
    Build the concierge system instruction for one chat turn.

    ``service_names`` must already be in the guest's language; they become the
    exact allow-list for service requests.
    """
    language = normalize_language(guest_language)
    sections = [
        f"You are the AI Concierge of {hotel.name} in {hotel.city}, {hotel.country}.\n"
        f"Room: {room_number or ROOM_FALLBACK}",
        _persona_block(hotel.tone_of_voice),
        _language_block(language),
        "CAPABILITIES - You can help guests with:\n"
        "1. **Service Requests** using the create_service_request tool (see AVAILABLE SERVICES)\n"
        "2. **Itinerary Planning** using the add_to_itinerary tool\n"
        f"3. **Local Recommendations** in {hotel.city}\n"
        "4. **Hotel Information**: WiFi, breakfast, checkout, amenities",
        _services_block(service_names),
        "HOTEL INFO:\n"
        f"- WiFi Password: {hotel.wifi_password or WIFI_FALLBACK}\n"
        f"- Breakfast: {hotel.breakfast_hours or BREAKFAST_FALLBACK}\n"
        f"- Checkout: {hotel.checkout_time or CHECKOUT_FALLBACK}",
        _gems_block(recommendations),
    ]
    if today is not None:
        sections.append(
            f"TODAY: {today.isoformat()}. Use it to fill startTime/endTime (ISO 8601) when adding itinerary items."
        )
    sections.append(
        "RULES:\n"
        "- Be concise and helpful\n"
        f"- ALWAYS respond in {LANGUAGE_NAMES[language]}\n"
        "- Always confirm what the guest wants before creating service requests\n"
        "- For itineraries, suggest times based on typical tourist schedules\n"
        "- Never recommend unsafe or unverified locations\n"
        "- If unsure, offer to connect the guest with hotel staff"
    )
    return "\n\n".join(sections)
