from __future__ import annotations

import json
from unittest import TestCase

from .errors import DecodeError
from .schemas import AnswerMessage, JoinMessage, QuestionMessage, RankMessage, decode_inbound, encode


class DecodeInboundTests(TestCase):
    def test_join_and_answer(self):
        self.assertEqual(decode_inbound('{"type": "join", "name": "Ann"}'), JoinMessage(name="Ann"))
        self.assertEqual(decode_inbound(b'{"type": "answer", "answer": "4"}'), AnswerMessage(answer="4"))

    def test_empty_name_is_accepted(self):
        self.assertEqual(decode_inbound('{"type": "join", "name": ""}').name, "")

    def test_malformed_inputs(self):
        bad = [
            "",
            "not json",
            "[]",
            '"join"',
            '{"name": "Ann"}',
            '{"type": "shout", "message": "hi"}',
            '{"type": "join"}',
            '{"type": "answer", "answer": 4}',
            b"\xff\xfe",
        ]
        for raw in bad:
            with self.subTest(raw=raw):
                with self.assertRaises(DecodeError):
                    decode_inbound(raw)

    def test_decode_error_is_a_value_error(self):
        with self.assertRaises(ValueError) as ctx:
            decode_inbound('{"type": "join"}')
        self.assertIn("name", str(ctx.exception))


class EncodeTests(TestCase):
    def test_outbound_shapes(self):
        self.assertEqual(json.loads(encode(RankMessage(rank=2))), {"type": "rank", "rank": 2})
        self.assertEqual(
            json.loads(encode(QuestionMessage(question="2+2?", options=["3", "4"]))),
            {"type": "question", "question": "2+2?", "options": ["3", "4"]},
        )
