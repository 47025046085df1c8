from iptv_sync.parsers.attributes import extract_attribute, split_top_level, title_after_last_comma


def test_extract_attribute_is_case_insensitive_and_accepts_both_quotes():
    line = '#EXTINF:-1 TVG-ID = "bbc.uk" group-title=\'News\',BBC'
    assert extract_attribute(line, 'tvg-id') == 'bbc.uk'
    assert extract_attribute(line, 'group-title') == 'News'


def test_extract_attribute_missing_returns_none():
    assert extract_attribute('#EXTINF:-1,Plain', 'tvg-logo') is None
    assert extract_attribute('', 'tvg-id') is None
    assert extract_attribute(None, 'tvg-id') is None


def test_split_ignores_commas_inside_quotes():
    line = '#EXTINF:-1 tvg-name="News, Weather" group-title="UK",Sky News'
    parts = split_top_level(line)
    assert len(parts) == 2
    assert parts[1] == 'Sky News'


def test_split_only_closes_with_the_opening_quote():
    line = '#EXTINF:-1 tvg-name="It\'s, here",Title'
    assert split_top_level(line)[-1] == 'Title'


def test_title_after_last_comma():
    assert title_after_last_comma('#EXTINF:-1 tvg-id="a,b",  Channel One ') == 'Channel One'


def test_title_falls_back_to_plain_last_comma_on_unbalanced_quotes():
    line = '#EXTINF:-1 tvg-name="Broken,Name'
    assert title_after_last_comma(line) == 'Name'


def test_title_without_comma_is_empty():
    assert title_after_last_comma('#EXTINF:-1 tvg-id="x"') == ''
