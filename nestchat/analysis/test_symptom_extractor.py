from nestchat.analysis.symptom_extractor import SymptomExtractor, format_symptom_for_prompt


def test_severe_bleeding_and_pain():
    symptoms = SymptomExtractor().extract_symptoms("I have severe bleeding and pain")
    types = [s.type for s in symptoms]

    assert "bleeding" in types
    assert "general_pain" in types
    assert all(s.severity == "severe" for s in symptoms)


def test_associated_symptoms_reference_each_other():
    symptoms = SymptomExtractor().extract_symptoms("My feet are swollen and I feel dizzy")

    assert [s.type for s in symptoms] == ["dizziness", "swelling"]
    assert symptoms[0].associated_symptoms == ["swelling"]
    assert symptoms[1].associated_symptoms == ["dizziness"]


def test_no_symptoms():
    assert SymptomExtractor().extract_symptoms("When is my next checkup?") == []
    assert SymptomExtractor().extract_symptoms("") == []


def test_defaults():
    symptom = SymptomExtractor().extract_symptoms("heartburn")[0]
    assert symptom.severity == "moderate"
    assert symptom.frequency == "occasional"
    assert symptom.onset_time == "unknown"


def test_ladders_pick_first_match():
    extractor = SymptomExtractor()
    assert extractor.extract_severity("a little bit of a terrible cramp") == "severe"
    assert extractor.extract_frequency("it happens daily, sometimes twice") == "daily"


def test_onset_returns_phrase_or_label():
    extractor = SymptomExtractor()
    assert extractor.extract_onset_time("it started 3 days ago") == "3 days ago"
    assert extractor.extract_onset_time("since yesterday") == "yesterday"
    assert extractor.extract_onset_time("it began last week") == "last_week"
    assert extractor.extract_onset_time("no idea") == "unknown"


def test_format_symptom_for_prompt():
    line = format_symptom_for_prompt({
        "symptom_type": "headache",
        "onset_time": "yesterday",
        "severity": "severe",
        "frequency": "daily",
        "associated_symptoms": ["vision_changes"],
    })
    assert line == "headache - started yesterday - severe severity - daily - with vision_changes"


def test_format_symptom_skips_defaults():
    line = format_symptom_for_prompt({
        "symptom_type": "nausea",
        "onset_time": "unknown",
        "severity": "mild",
        "frequency": "occasional",
    })
    assert line == "nausea - mild severity"
