from nestchat.analysis.intent_classifier import Intent
from nestchat.services import fallback
from nestchat.services.language import LanguageInfo, LanguageManager, LanguageValidation


def test_validate_supported_and_fallback():
    manager = LanguageManager()
    assert manager.validate("es") == LanguageValidation("es", False)
    assert manager.validate("fr") == LanguageValidation("en", True)
    assert manager.validate("") == LanguageValidation("en", True)


def test_disabled_language_falls_back():
    manager = LanguageManager()
    manager.disable_language("es")
    assert manager.validate("es") == LanguageValidation("en", True)

    manager.enable_language("es")
    assert manager.is_supported("es")


def test_default_language_cannot_be_disabled():
    manager = LanguageManager()
    manager.disable_language("en")
    assert manager.is_supported("en")


def test_added_languages_are_listed_sorted():
    manager = LanguageManager()
    manager.add_language(LanguageInfo("fr", "French", "Français", is_experimental=True))

    assert [info.code for info in manager.get_supported_languages()] == ["en", "es", "fr"]
    assert manager.get_language_info("fr").native_name == "Français"


def test_fallbacks_are_localized():
    assert fallback.get_fallback_response(Intent.SYMPTOM_REPORT, "en").action == "emergency"
    assert fallback.get_fallback_response(Intent.SYMPTOM_REPORT, "es").content.startswith("Estoy")
    assert fallback.get_fallback_response(Intent.GRATITUDE, "en").content.startswith("I'm sorry")
    assert fallback.get_timeout_response("de") == fallback.get_timeout_response("en")
    assert fallback.get_circuit_open_response("es").action == "contact_support"
    assert fallback.is_emergency_intent(Intent.SYMPTOM_REPORT)
    assert not fallback.is_emergency_intent(Intent.SCHEDULING)
