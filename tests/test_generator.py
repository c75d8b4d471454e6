import json
import unittest
from types import SimpleNamespace
from unittest import mock

import openai

from dailybrief.briefs.generation import OpenAITextGenerator
from dailybrief.briefs.generator import NarrativeGenerator
from dailybrief.briefs.prompt import ArticlePayload
from dailybrief.errors import BriefGenerationError
from dailybrief.profiles.profile_types import ProfilePayload

from fakes import FakeTextGenerator, echo_brief


PROFILE = ProfilePayload(
    interests=["AI/ML"],
    goals=["Ship an AI product"],
    role_title="Product Manager",
    seniority="Senior",
    industries=["Technology"],
    geography="US",
    professional_background="",
)

ARTICLES = [
    ArticlePayload(index=i, title=f"Story number {i}", source_url=f"https://example.com/{i}",
                   source_name="Example", published_at="2026-03-10", content="Body.")
    for i in range(1, 13)
]


def chat_response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class TestNarrativeGenerator(unittest.TestCase):
    def test_happy_path_filters_invented_links(self):
        fake = FakeTextGenerator(echo_brief(extra_links=["https://invented.example/404"]))
        brief = NarrativeGenerator(fake).generate(PROFILE, ARTICLES, "2026-03-10")

        self.assertEqual(len(fake.calls), 1)
        self.assertEqual(len(brief.items), 10)
        self.assertEqual(brief.brief_date, "2026-03-10")
        self.assertEqual(brief.narrative_thread, "Chips and models.")
        inputs = {a.source_url for a in ARTICLES}
        for item in brief.items:
            self.assertEqual(len(item.source_links), 1)
            self.assertIn(item.source_links[0].url, inputs)

    def test_no_articles_is_an_error(self):
        fake = FakeTextGenerator(echo_brief())
        with self.assertRaises(BriefGenerationError):
            NarrativeGenerator(fake).generate(PROFILE, [], "2026-03-10")
        self.assertEqual(fake.calls, [])

    def test_malformed_output_is_an_error(self):
        fake = FakeTextGenerator(lambda s, u: "Here is your brief: not json")
        with self.assertRaises(BriefGenerationError):
            NarrativeGenerator(fake).generate(PROFILE, ARTICLES, "2026-03-10")

    def test_fenced_output_accepted(self):
        body = json.dumps({"items": [{"position": 1, "title": "Story number 3", "summary": "s",
                                      "why_it_matters": "w", "relevance_score": 0.9, "topics": [],
                                      "source_links": [{"url": "https://example.com/3", "label": "E"}]}]})
        fake = FakeTextGenerator(lambda s, u: f"```json\n{body}\n```")
        brief = NarrativeGenerator(fake).generate(PROFILE, ARTICLES, "2026-03-10")
        self.assertEqual(brief.items[0].source_links[0].url, "https://example.com/3")


class TestOpenAITextGenerator(unittest.TestCase):
    @mock.patch("dailybrief.briefs.generation.openai.OpenAI")
    def test_json_mode_and_content(self, client_cls):
        client = client_cls.return_value
        client.chat.completions.create.return_value = chat_response('{"items": []}')

        out = OpenAITextGenerator("key", model="gpt-4o").complete("sys", "user")

        self.assertEqual(out, '{"items": []}')
        kwargs = client.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["response_format"], {"type": "json_object"})
        self.assertEqual(kwargs["messages"][0], {"role": "system", "content": "sys"})
        self.assertEqual(client_cls.call_args.kwargs["max_retries"], 0)

    @mock.patch("dailybrief.briefs.generation.openai.OpenAI")
    def test_openrouter_skips_response_format(self, client_cls):
        client = client_cls.return_value
        client.chat.completions.create.return_value = chat_response("{}")
        OpenAITextGenerator("key", base_url="https://openrouter.ai/api/v1").complete("s", "u")
        self.assertNotIn("response_format", client.chat.completions.create.call_args.kwargs)

    @mock.patch("dailybrief.briefs.generation.openai.OpenAI")
    def test_errors_wrapped(self, client_cls):
        client = client_cls.return_value
        client.chat.completions.create.side_effect = openai.OpenAIError("boom")
        with self.assertRaises(BriefGenerationError):
            OpenAITextGenerator("key").complete("s", "u")

        client.chat.completions.create.side_effect = None
        client.chat.completions.create.return_value = chat_response("   ")
        with self.assertRaises(BriefGenerationError):
            OpenAITextGenerator("key").complete("s", "u")


if __name__ == "__main__":
    unittest.main()
