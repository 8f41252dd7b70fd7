import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import requests

from teamcase.ingestion.naver_search import NaverSearchClient, SearchError


def _response(payload):
    resp = MagicMock()
    resp.json.return_value = payload
    resp.raise_for_status.return_value = None
    return resp


CLIENT = NaverSearchClient(client_id="id", client_secret="secret", timeout=7)


class TestNaverSearchClient(unittest.TestCase):
    @patch("teamcase.ingestion.naver_search.requests.get")
    def test_blog_items(self, get):
        get.return_value = _response(
            {
                "items": [
                    {
                        "title": "<b>공모전</b> 후기",
                        "description": "팀원 모집부터 수상까지",
                        "link": "https://blog.naver.com/abc/1",
                        "bloggername": "abc",
                        "postdate": "20250301",
                    },
                    {"title": "", "link": "https://blog.naver.com/abc/2"},
                    {"title": "링크 없음", "link": ""},
                ]
            }
        )
        items = CLIENT.search("공모전", "blog", count=500)

        self.assertEqual(len(items), 1)
        item = items[0]
        self.assertEqual(item.title, "<b>공모전</b> 후기")
        self.assertEqual(item.source_type, "blog")
        self.assertEqual(item.search_term, "공모전")
        self.assertEqual(item.source_name, "abc")
        self.assertEqual(item.published_at, datetime(2025, 3, 1, tzinfo=timezone.utc))

        args, kwargs = get.call_args
        self.assertEqual(args[0], "https://openapi.naver.com/v1/search/blog.json")
        self.assertEqual(kwargs["params"]["display"], 100)
        self.assertEqual(kwargs["params"]["sort"], "date")
        self.assertEqual(kwargs["headers"]["X-Naver-Client-Id"], "id")
        self.assertEqual(kwargs["headers"]["X-Naver-Client-Secret"], "secret")
        self.assertEqual(kwargs["timeout"], 7)

    @patch("teamcase.ingestion.naver_search.requests.get")
    def test_news_prefers_original_link(self, get):
        get.return_value = _response(
            {
                "items": [
                    {
                        "title": "대학생 팀 공모전 대상 수상",
                        "description": "...",
                        "originallink": "https://press.example.com/a/1",
                        "link": "https://n.news.naver.com/article/1",
                        "pubDate": "Mon, 06 Oct 2025 09:00:00 +0900",
                    },
                    {
                        "title": "미러만 있는 기사",
                        "link": "https://n.news.naver.com/article/2",
                        "pubDate": "not a date",
                    },
                ]
            }
        )
        items = CLIENT.search("공모전 수상 팀", "news")

        self.assertEqual([i.link for i in items], ["https://press.example.com/a/1", "https://n.news.naver.com/article/2"])
        self.assertEqual(items[0].published_at, datetime(2025, 10, 6, 0, 0, tzinfo=timezone.utc))
        self.assertEqual(items[0].published_at.utcoffset(), timedelta(hours=9))
        self.assertIsNone(items[1].published_at)
        self.assertIsNone(items[0].source_name)

    @patch("teamcase.ingestion.naver_search.requests.get")
    def test_transport_error_raises(self, get):
        get.side_effect = requests.exceptions.ConnectionError("boom")
        with self.assertRaises(SearchError) as cm:
            CLIENT.search("팀플", "blog")
        self.assertIn("[팀플]", str(cm.exception))

    @patch("teamcase.ingestion.naver_search.requests.get")
    def test_http_error_raises(self, get):
        resp = _response({})
        resp.raise_for_status.side_effect = requests.exceptions.HTTPError("401")
        get.return_value = resp
        with self.assertRaises(SearchError):
            CLIENT.search("팀플", "blog")

    @patch("teamcase.ingestion.naver_search.requests.get")
    def test_non_json_body_raises(self, get):
        resp = _response(None)
        resp.json.side_effect = ValueError("Expecting value")
        get.return_value = resp
        with self.assertRaises(SearchError):
            CLIENT.search("팀플", "news")

    @patch("teamcase.ingestion.naver_search.requests.get")
    def test_payload_without_items(self, get):
        get.return_value = _response({"errorMessage": "quota"})
        self.assertEqual(CLIENT.search("팀플", "blog"), [])

    @patch("teamcase.ingestion.naver_search.requests.get")
    def test_unsupported_source_type(self, get):
        self.assertEqual(CLIENT.search("팀플", "cafe"), [])
        get.assert_not_called()


if __name__ == "__main__":
    unittest.main()
