import unittest

from teamcase.contracts.oracle_response import (
    extract_json_object,
    parse_oracle_reply,
    result_from_payload,
    validate_oracle_response,
)


def _payload(**overrides):
    payload = {
        "isRelevant": True,
        "actor": {"label": "학생", "confidence": 77, "alternatives": ["팀원"]},
        "teamType": {"label": "갈등형", "category": "갈등", "confidence": 91},
        "primaryCategory": {"label": "팀플", "confidence": 88},
        "excerpt": "조원끼리 싸웠다",
        "reasoning": {"actorReason": "수업", "typeReason": "싸움", "isPositive": False},
    }
    payload.update(overrides)
    return payload


class TestExtractJsonObject(unittest.TestCase):
    def test_surrounding_prose(self):
        self.assertEqual(extract_json_object('Sure! {"a": {"b": 1}} thanks {"c": 2}'), '{"a": {"b": 1}}')

    def test_braces_inside_strings(self):
        self.assertEqual(extract_json_object('x {"s": "}{\\"}"} y'), '{"s": "}{\\"}"}')

    def test_unbalanced_or_missing(self):
        self.assertIsNone(extract_json_object('x {"a": 1'))
        self.assertIsNone(extract_json_object("no json here"))
        self.assertIsNone(extract_json_object(""))

    def test_parse_code_fenced_reply(self):
        reply = '```json\n{"isRelevant": false}\n```'
        self.assertEqual(parse_oracle_reply(reply), {"isRelevant": False})

    def test_parse_invalid_json(self):
        self.assertIsNone(parse_oracle_reply("{not: json}"))


class TestOracleContract(unittest.TestCase):
    def test_valid_payload(self):
        self.assertEqual(validate_oracle_response(_payload()), [])

    def test_not_relevant_needs_no_dimensions(self):
        self.assertEqual(validate_oracle_response({"isRelevant": False}), [])

    def test_relevant_requires_dimensions(self):
        p = _payload()
        del p["actor"]
        self.assertTrue(validate_oracle_response(p))

    def test_confidence_range(self):
        p = _payload(actor={"label": "학생", "confidence": 120})
        errors = validate_oracle_response(p)
        self.assertTrue(any(e.startswith("actor.confidence") for e in errors))

    def test_team_type_needs_category(self):
        p = _payload(teamType={"label": "갈등형", "confidence": 91})
        self.assertTrue(validate_oracle_response(p))

    def test_result_uses_confidences_as_is(self):
        r = result_from_payload(_payload())
        self.assertEqual(r.actor.confidence, 77)
        self.assertEqual(r.actor.alternatives, ("팀원",))
        self.assertFalse(r.actor.is_ambiguous)
        self.assertEqual((r.team_type.label, r.team_type.category, r.team_type.confidence), ("갈등형", "갈등", 91))
        self.assertEqual(r.primary_category.label, "팀플")
        self.assertEqual(r.reasoning.type_reason, "싸움")


if __name__ == "__main__":
    unittest.main()
