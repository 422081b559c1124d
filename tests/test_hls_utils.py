from hls_proxy.utils.hls_utils import (
    find_fallback_variant_uri,
    parse_attribute_list,
    parse_variant_streams,
    select_best_variant,
)


def test_parse_attribute_list_handles_quoted_commas():
    attributes = parse_attribute_list('BANDWIDTH=800000,CODECS="avc1.4d401f,mp4a.40.2",RESOLUTION=1280x720')
    assert attributes == {"BANDWIDTH": "800000", "CODECS": "avc1.4d401f,mp4a.40.2", "RESOLUTION": "1280x720"}


def test_parse_variant_streams_reads_bandwidth_and_uri():
    playlist = "\n".join(
        [
            "#EXTM3U",
            "#EXT-X-STREAM-INF:AVERAGE-BANDWIDTH=900000,BANDWIDTH=300000",
            "low/index.m3u8",
            "#EXT-X-STREAM-INF:RESOLUTION=640x360",
            "",
            "# a comment between tag and URI",
            "nobw/index.m3u8",
        ]
    )
    streams = parse_variant_streams(playlist)
    assert [(s.uri, s.bandwidth) for s in streams] == [("low/index.m3u8", 300000), ("nobw/index.m3u8", 0)]
    assert streams[0].attributes["AVERAGE-BANDWIDTH"] == "900000"


def test_stream_inf_without_uri_is_dropped():
    playlist = "#EXTM3U\n#EXT-X-STREAM-INF:BANDWIDTH=100\n"
    assert parse_variant_streams(playlist) == []


def test_stream_inf_consumes_its_uri_line():
    playlist = "\n".join(
        [
            "#EXT-X-STREAM-INF:BANDWIDTH=100",
            "#EXT-X-STREAM-INF:BANDWIDTH=200",
            "shared.m3u8",
            "#EXT-X-STREAM-INF:BANDWIDTH=50",
            "last.m3u8",
        ]
    )
    streams = parse_variant_streams(playlist)
    assert [(s.uri, s.bandwidth) for s in streams] == [("shared.m3u8", 100), ("last.m3u8", 50)]


def test_select_best_variant_prefers_later_on_tie():
    playlist = "#EXT-X-STREAM-INF:BANDWIDTH=500000\nfirst.m3u8\n#EXT-X-STREAM-INF:BANDWIDTH=500000\nsecond.m3u8\n"
    assert select_best_variant(parse_variant_streams(playlist)).uri == "second.m3u8"


def test_select_best_variant_picks_highest_bandwidth():
    playlist = (
        "#EXT-X-STREAM-INF:BANDWIDTH=300000\nlow.m3u8\n"
        "#EXT-X-STREAM-INF:BANDWIDTH=800000\nhigh.m3u8\n"
        "#EXT-X-STREAM-INF:BANDWIDTH=500000\nmid.m3u8\n"
    )
    assert select_best_variant(parse_variant_streams(playlist)).uri == "high.m3u8"


def test_select_best_variant_empty():
    assert select_best_variant([]) is None


def test_find_fallback_variant_uri():
    playlist = '#EXTM3U\n#EXT-X-MEDIA:TYPE=AUDIO,URI="audio.m3u8"\nposter.jpg\nalt/index.m3u8?token=1\nother.m3u8\n'
    assert find_fallback_variant_uri(playlist) == "alt/index.m3u8?token=1"
    assert find_fallback_variant_uri("#EXTM3U\n#EXT-X-MEDIA:TYPE=AUDIO\n") is None
