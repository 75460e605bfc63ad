import unittest
from unittest.mock import Mock

from postenrich.embeds import EmbedEnricher
from postenrich.html import parse, serialize
from postenrich.stats import PassStats

VIDEO = "https://www.youtube.com/watch?v=9bZkp7q19f0"


class CandidatesTest(unittest.TestCase):
    def setUp(self):
        self.enricher = EmbedEnricher(Mock())

    def hrefs(self, html):
        return [a["href"] for a in self.enricher.candidates(parse(html))]

    def test_standalone_link_in_paragraph(self):
        html = f'<p>\n<a href="{VIDEO}">{VIDEO}</a>\n</p>'
        self.assertEqual(self.hrefs(html), [VIDEO])

    def test_inline_link_is_ignored(self):
        self.assertEqual(self.hrefs(f'<p>watch <a href="{VIDEO}">this</a></p>'), [])

    def test_onebox_class_marks_inline_links(self):
        html = f'<p>watch <a class="onebox" href="{VIDEO}">this</a></p>'
        self.assertEqual(self.hrefs(html), [VIDEO])

    def test_links_inside_onebox_markup_are_ignored(self):
        html = f'<aside class="onebox"><p><a href="{VIDEO}">{VIDEO}</a></p></aside>'
        self.assertEqual(self.hrefs(html), [])

    def test_only_embeddable_urls(self):
        self.assertEqual(self.hrefs('<p><a href="http://example.com/">x</a></p>'), [])
        self.assertEqual(
            self.hrefs('<p><a href="https://youtu.be/9bZkp7q19f0">x</a></p>'),
            ["https://youtu.be/9bZkp7q19f0"],
        )
        self.assertEqual(
            self.hrefs('<p><a href="https://vimeo.com/76979871">x</a></p>'),
            ["https://vimeo.com/76979871"],
        )


class ApplyTest(unittest.TestCase):
    def setUp(self):
        self.service = Mock()
        self.service.embed.return_value = '<div class="video">v</div>'
        self.stats = PassStats()
        self.enricher = EmbedEnricher(self.service, stats=self.stats)

    def test_each_url_is_fetched_once(self):
        soup = parse(f'<p><a href="{VIDEO}">a</a></p><p><a href="{VIDEO}">b</a></p>')
        self.assertTrue(self.enricher.apply(soup, 9, False))
        self.service.embed.assert_called_once_with(VIDEO, 9, False)
        self.assertEqual(
            serialize(soup),
            '<div class="video onebox-result">v</div>'
            '<div class="video onebox-result">v</div>',
        )
        self.assertEqual(self.stats.embeds_replaced, 2)

    def test_inline_onebox_link_keeps_its_paragraph(self):
        soup = parse(f'<p>see <a class="onebox" href="{VIDEO}">v</a> here</p>')
        self.enricher.apply(soup, 1, False)
        self.assertEqual(
            serialize(soup), '<p>see <div class="video onebox-result">v</div> here</p>'
        )

    def test_inserted_elements_are_marked_as_embed_output(self):
        self.service.embed.return_value = (
            f'<p><a href="{VIDEO}">{VIDEO}</a></p>text<img src="http://a.com/t.jpg">'
        )
        soup = parse(f'<p><a href="{VIDEO}">v</a></p>')
        self.enricher.apply(soup, 1, False)
        self.assertEqual(
            serialize(soup),
            f'<p class="onebox-result"><a href="{VIDEO}">{VIDEO}</a></p>text'
            '<img src="http://a.com/t.jpg" class="onebox-result">',
        )

    def test_marked_output_is_not_embedded_again(self):
        self.service.embed.return_value = f'<p><a href="{VIDEO}">{VIDEO}</a></p>'
        soup = parse(f'<p><a href="{VIDEO}">v</a></p>')
        self.assertTrue(self.enricher.apply(soup, 1, False))
        again = parse(serialize(soup))
        self.assertFalse(self.enricher.apply(again, 1, False))
        self.assertEqual(self.service.embed.call_count, 1)

    def test_without_a_service_nothing_changes(self):
        enricher = EmbedEnricher(None)
        soup = parse(f'<p><a href="{VIDEO}">v</a></p>')
        self.assertFalse(enricher.apply(soup, 1, False))
        self.assertEqual(serialize(soup), f'<p><a href="{VIDEO}">v</a></p>')

    def test_failures_are_counted(self):
        self.service.embed.side_effect = RuntimeError("boom")
        soup = parse(f'<p><a href="{VIDEO}">v</a></p>')
        self.assertFalse(self.enricher.apply(soup, 1, False))
        self.assertEqual(self.stats.embed_failures, 1)


if __name__ == "__main__":
    unittest.main()
