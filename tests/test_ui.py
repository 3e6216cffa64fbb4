from termtunes import ui
from termtunes.events import KeyMap
from termtunes.state import GLYPH_PLAYING


class TestTextHelpers:
    """Tests for width-aware text helpers."""

    def test_display_width_ignores_ansi(self):
        """Test escape codes take no columns."""
        assert ui.display_width("\033[1mabc\033[0m") == 3

    def test_wide_characters(self):
        """Test East Asian wide characters count double."""
        assert ui.display_width("日本") == 4

    def test_truncate_adds_ellipsis(self):
        """Test long text is cut with an ellipsis."""
        assert ui.truncate_to_width("abcdefgh", 5) == "abcd…"
        assert ui.truncate_to_width("abc", 5) == "abc"
        assert ui.truncate_to_width("abc", 0) == ""

    def test_truncate_wide(self):
        """Test truncation never splits a wide character."""
        assert ui.display_width(ui.truncate_to_width("日本語テキスト", 6)) <= 6

    def test_pad(self):
        """Test padding to a display width."""
        assert ui.pad_to_width("ab", 5) == "ab   "


class TestProgressBar:
    """Tests for the progress line."""

    def test_bar_fill(self):
        """Test fill is proportional and the width is fixed."""
        assert ui.render_progress_bar(0.5, 10) == "█████░░░░░"
        assert ui.render_progress_bar(0.0, 4) == "░░░░"
        assert ui.render_progress_bar(1.2, 4) == "████"

    def test_progress_line_fills_width(self, make_player):
        """Test bar, glyph and time text add up to the terminal width."""
        player = make_player([100])
        session = player.session(width=60)
        session.glyph = GLYPH_PLAYING
        session.progress_text = "00:10 / 01:40"
        session.fraction = 0.1

        line = ui.render_progress_line(session)
        start, width = ui.progress_bar_span(session)

        assert ui.display_width(line) == 60
        assert line.endswith(GLYPH_PLAYING + "00:10 / 01:40 ")
        assert line[start:start + width].count("█") == round(0.1 * width)

    def test_bar_never_vanishes(self, make_player):
        """Test a tiny terminal still gets a one-cell bar."""
        session = make_player([1]).session(width=5)

        assert ui.progress_bar_span(session)[1] == 1


class TestRender:
    """Tests for full-screen rendering."""

    def test_line_count_matches_height(self, make_player):
        """Test the screen is exactly as tall as the terminal."""
        player = make_player([1] * 20)

        for height in (8, 24, 50):
            session = player.session(height=height)
            assert len(ui.render(session)) == height

    def test_selected_and_playing_markers(self, make_player):
        """Test the cursor row is highlighted and the playing row marked."""
        player = make_player([1, 1, 1])
        session = player.session()
        session.selection.cursor = 1
        session.now_playing = 2

        text = "\n".join(ui.render(session))

        assert ui.C_SELECTION + "  Track 1" in text
        assert "♪ Track 2" in text

    def test_status_and_repeat(self, make_player):
        """Test the status line and repeat indicator are shown."""
        session = make_player([1]).session(repeat=True, status_message="Current Song: Track 0")

        lines = ui.render(session)

        assert "(repeat)" in lines[2]
        assert "Current Song: Track 0" in lines[3]

    def test_scrolled_list(self, make_player):
        """Test rendering starts at the scroll offset."""
        session = make_player([1] * 20).session()
        session.selection.scroll_offset = 10

        text = "\n".join(ui.render(session))

        assert "Track 10" in text
        assert "Album 9⋅" not in text

    def test_empty_library(self, make_player):
        """Test an empty list renders a placeholder."""
        session = make_player([]).session()

        assert any("No items." in line for line in ui.render(session))

    def test_help_line(self, make_player):
        """Test the footer lists key bindings."""
        lines = ui.render(make_player([1]).session())

        assert "quit" in lines[-1]
        assert "? toggle help" in lines[-1]

    def test_applied_filter_shows_matches_only(self, make_player):
        """Test only matching rows render and the cursor indexes those rows."""
        session = make_player([1] * 12).session()
        session.start_filter()
        session.set_filter("1")
        session.accept_filter()
        session.selection.cursor = 1

        lines = ui.render(session)
        text = "\n".join(lines)

        assert "[filter: 1]" in lines[2]
        assert ui.C_SELECTION + "  Track 10" in text
        assert "Track 11" in text
        assert "Track 2" not in text

    def test_filter_prompt_while_typing(self, make_player):
        """Test the title row turns into the query prompt."""
        session = make_player([1, 1]).session()
        session.start_filter()
        session.set_filter("zz")

        lines = ui.render(session)

        assert "Filter: zz" in lines[2]
        assert any("No matches." in line for line in lines)

    def test_full_help_lists_every_binding(self, make_player):
        """Test the help overlay replaces the list with all bindings."""
        keys = KeyMap()
        session = make_player([1, 1]).session(show_full_help=True, height=30)

        text = "\n".join(ui.render(session, keys))

        for column in keys.full_help():
            for binding in column:
                assert binding.help_text in text
        assert "Album 0" not in text

    def test_list_capacity(self):
        """Test list capacity for a few heights."""
        assert ui.list_capacity(24) == 6
        assert ui.list_capacity(3) == 1
