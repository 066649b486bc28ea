"""Unit tests for text normalization and extractive summarization."""

import pytest

from meme_day.config import SummaryConfig
from meme_day.processing.text_normalizer import (
    PORTUGUESE_STOPWORDS,
    clean,
    extract_keywords,
    normalize_word,
    tokenize,
)
from meme_day.processing.summarizer import ExtractiveSummarizer, summarize


RIO_TEXT = (
    "Chuvas fortes atingem o Rio de Janeiro nesta terça. "
    "O governo declarou estado de emergência na cidade após os temporais. "
    "Moradores relatam alagamentos em diversos bairros da zona sul. "
    "A prefeitura abriu abrigos temporários para desalojados. "
    "Previsão indica mais chuva nos próximos dias."
)


class TestClean:
    """Test HTML cleanup."""

    def test_removes_scripts_styles_comments_and_tags(self):
        """Test that non-visible blocks disappear together with their content."""
        html = (
            "<html><head><style>body { color: red; }</style>"
            "<script>var x = 1;</script></head>"
            "<body><!-- comentário --><p>Olá&nbsp;&amp;   mundo</p>"
            "<noscript>ative o javascript</noscript></body></html>"
        )

        assert clean(html) == "Olá & mundo"

    def test_collapses_whitespace(self):
        """Test that whitespace runs become single spaces."""
        html = "<div>\n  primeira\n\n\t<span>segunda</span>   terceira </div>"

        assert clean(html) == "primeira segunda terceira"

    def test_malformed_markup(self):
        """Test that unclosed tags still yield their text."""
        assert clean("<p>texto <b>sem fechar") == "texto sem fechar"

    @pytest.mark.parametrize("value", ["", None, 42])
    def test_absent_input_returns_empty_string(self, value):
        """Test that empty or non-string input never raises."""
        assert clean(value) == ""


class TestNormalizeWord:
    """Test word normalization for frequency counting."""

    def test_accented_and_plain_forms_merge(self):
        """Test that diacritics are stripped."""
        assert normalize_word("ação") == normalize_word("acao") == "acao"

    def test_lowercases(self):
        assert normalize_word("CORAÇÃO") == "coracao"

    def test_empty(self):
        assert normalize_word("") == ""

    def test_tokenize_drops_empty_tokens(self):
        """Test that punctuation runs do not produce empty tokens."""
        assert tokenize("Olá, mundo!! Até já...") == ["ola", "mundo", "ate", "ja"]

    def test_stopwords_are_stored_normalized(self):
        """Test that accented stopwords match normalized tokens."""
        assert "apos" in PORTUGUESE_STOPWORDS
        assert "e" in PORTUGUESE_STOPWORDS
        assert "após" not in PORTUGUESE_STOPWORDS

    def test_extract_keywords(self):
        """Test keyword extraction keeps first-appearance order and skips stopwords."""
        keywords = extract_keywords("Chuvas fortes atingem o Rio de Janeiro; chuvas continuam", limit=5)

        assert keywords == ["chuvas", "fortes", "atingem", "rio", "janeiro"]


class TestExtractiveSummarizer:
    """Test sentence ranking and selection."""

    @pytest.fixture
    def summarizer(self):
        return ExtractiveSummarizer(SummaryConfig())

    def test_short_text_is_returned_unchanged(self, summarizer):
        """Test the short-circuit path keeps every sentence in order."""
        text = "Primeira frase com tamanho suficiente. Segunda frase também bem longa!"

        assert summarizer.summarize(text, max_sentences=3) == text

    def test_short_text_gets_terminal_punctuation(self, summarizer):
        """Test that a final period is appended when missing."""
        text = "Primeira frase com tamanho suficiente. Segunda frase sem ponto final"

        result = summarizer.summarize(text, max_sentences=3)

        assert result == text + "."

    def test_rio_example_selects_two_highest_scored_sentences(self, summarizer):
        """Test the weather example picks sentences 1 and 3 in document order."""
        result = summarizer.summarize(RIO_TEXT, max_sentences=2)

        assert result == (
            "Chuvas fortes atingem o Rio de Janeiro nesta terça. "
            "Moradores relatam alagamentos em diversos bairros da zona sul."
        )

    def test_selection_is_ordered_subset(self, summarizer):
        """Test that long texts yield exactly max_sentences input sentences in order."""
        sentences = [
            "O mercado de ações abriu em alta nesta segunda-feira.",
            "Investidores reagiram bem aos dados de emprego divulgados.",
            "O mercado de câmbio também registrou valorização do real.",
            "Analistas esperam que o mercado siga otimista durante a semana.",
            "O clima em São Paulo segue ameno.",
            "Em Brasília, o congresso discute novas regras fiscais para o mercado.",
        ]
        text = " ".join(sentences)

        result = summarizer.summarize(text, max_sentences=3)
        chosen = ExtractiveSummarizer.split_sentences(result)

        assert len(chosen) == 3
        assert all(s in sentences for s in chosen)
        assert [sentences.index(s) for s in chosen] == sorted(sentences.index(s) for s in chosen)
        assert result.endswith((".", "!", "?"))

    def test_output_always_ends_with_terminal_punctuation(self, summarizer):
        """Test punctuation guard on the ranking path."""
        text = (
            "Primeira frase longa o suficiente sobre economia! "
            "Segunda frase longa o suficiente sobre economia? "
            "Terceira frase longa o suficiente sobre economia "
        )

        result = summarizer.summarize(text, max_sentences=1)

        assert result.endswith((".", "!", "?"))

    def test_drops_short_fragments(self, summarizer):
        """Test that fragments under the minimum length are discarded."""
        text = "Menu. Entrar. Esta é uma frase de verdade com conteúdo."

        assert summarizer.summarize(text, max_sentences=3) == "Esta é uma frase de verdade com conteúdo."

    def test_only_fragments_falls_back_to_leading_fragments(self, summarizer):
        """Test that a text of short fragments still yields text."""
        assert summarizer.summarize("Curto. Breve. Mini.", max_sentences=2) == "Curto. Breve."

    def test_truncates_input(self):
        """Test that text beyond the character budget is ignored."""
        summarizer = ExtractiveSummarizer(SummaryConfig(max_input_chars=60))
        text = "Primeira frase com tamanho suficiente aqui. Segunda frase que fica além do limite de caracteres."

        assert summarizer.summarize(text) == "Primeira frase com tamanho suficiente aqui."

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty_text_returns_sentinel(self, summarizer, text):
        """Test the 'unavailable' sentinel for empty input."""
        assert summarizer.summarize(text) == "Resumo indisponível no momento."

    def test_summarize_html_with_nothing_visible(self, summarizer):
        """Test that HTML without visible text returns the sentinel."""
        assert summarizer.summarize_html("<script>only()</script>") == "Resumo indisponível no momento."

    def test_frequency_table_merges_accents_and_skips_stopwords(self, summarizer):
        """Test that the frequency table is keyed by normalized words."""
        table = summarizer.build_frequency_table(["Ação rápida de todos.", "Acao lenta e firme."])

        assert table["acao"] == 2
        assert table["rapida"] == 1
        assert "de" not in table
        assert "e" not in table
        assert "" not in table

    def test_readable_bonus(self, summarizer):
        """Test the flat bonus for sentences in the readable word band."""
        frequencies = {"alfa": 1}
        short = summarizer.score_sentence("alfa beta", 0, frequencies)
        readable = summarizer.score_sentence("alfa beta gama delta epsilon zeta eta teta", 1, frequencies)

        assert short.score == 1.0
        assert readable.score == 1.5

    def test_module_level_summarize(self):
        """Test the convenience function."""
        assert summarize(RIO_TEXT, max_sentences=5) == RIO_TEXT
