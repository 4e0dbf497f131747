import pytest

from nestchat.analysis.fact_extractor import ExtractedFact, FactExtractor, parse_fact_json
from nestchat.core.circuit_breaker import CircuitBreaker
from nestchat.core.exceptions import LLMError
from nestchat.llm.types import ChatCompletion


class FakeLLM:
    def __init__(self, content="", error=None):
        self.content = content
        self.error = error
        self.calls = 0

    def chat_completion(self, request):
        self.calls += 1
        if self.error:
            raise self.error
        return ChatCompletion(content=self.content)

    def stream_chat_completion(self, request):
        raise AssertionError("fact extraction must not stream")


@pytest.mark.parametrize("message, week", [
    ("I'm 14 weeks pregnant", "14"),
    ("this is week 20 of my pregnancy", "20"),
    ("estoy embarazada de 30 semanas", "30"),
])
def test_pregnancy_week_rules(message, week):
    facts = FactExtractor().extract(message)
    assert ExtractedFact("pregnancy_week", week, 0.8) in facts


def test_out_of_range_week_ignored():
    assert FactExtractor().extract("I'm 50 weeks pregnant") == []


def test_due_date_and_first_pregnancy():
    facts = FactExtractor().extract("This is my first pregnancy and I'm due in March")
    assert facts == [
        ExtractedFact("due_date", "March", 0.7),
        ExtractedFact("first_pregnancy", "yes", 0.7),
    ]


def test_llm_facts_merge_by_confidence():
    llm = FakeLLM(
        '```json\n{"facts": ['
        '{"key": "diet", "value": "vegetarian", "confidence": 0.9},'
        '{"key": "pregnancy_week", "value": "15", "confidence": 0.95},'
        '{"key": "favorite_color", "value": "blue", "confidence": 0.9}]}\n```'
    )
    facts = FactExtractor(llm_client=llm, use_llm=True).extract("I'm 14 weeks pregnant", "Great!")

    assert facts == [
        ExtractedFact("diet", "vegetarian", 0.9),
        ExtractedFact("pregnancy_week", "15", 0.95),
    ]


def test_llm_bad_json_contributes_nothing():
    llm = FakeLLM("I think she is vegetarian")
    facts = FactExtractor(llm_client=llm, use_llm=True).extract("I'm 14 weeks pregnant")
    assert facts == [ExtractedFact("pregnancy_week", "14", 0.8)]


def test_llm_errors_go_through_breaker():
    llm = FakeLLM(error=LLMError("down"))
    breaker = CircuitBreaker(max_failures=1, reset_timeout_seconds=60)
    extractor = FactExtractor(llm_client=llm, circuit_breaker=breaker, use_llm=True)

    assert extractor.extract("hello") == []
    assert extractor.extract("hello") == []
    assert llm.calls == 1


def test_llm_disabled_without_client():
    assert not FactExtractor(use_llm=True).use_llm


def test_parse_fact_json_clamps_and_filters():
    facts = parse_fact_json('{"facts": [{"key": "Allergies", "value": "nuts", "confidence": 3},'
                            '{"key": "diet", "value": ""}, "junk"]}')
    assert facts == [ExtractedFact("allergies", "nuts", 1.0)]


def test_parse_fact_json_rejects_text():
    with pytest.raises(ValueError):
        parse_fact_json("not json")


@pytest.mark.parametrize("raw", ['{"facts": null}', '{"facts": 5}', '{"facts": "diet"}', "[1, 2]"])
def test_parse_fact_json_tolerates_wrong_shapes(raw):
    assert parse_fact_json(raw) == []


def test_llm_null_facts_contribute_nothing():
    llm = FakeLLM('{"facts": null}')
    facts = FactExtractor(llm_client=llm, use_llm=True).extract("I'm 14 weeks pregnant")
    assert facts == [ExtractedFact("pregnancy_week", "14", 0.8)]
