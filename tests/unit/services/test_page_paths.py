from post_metrics.services.page_paths import PermalinkPagePaths


def test_page_path_is_permalink_path():
    paths = PermalinkPagePaths("https://blog.example.com/posts/{subject_id}/")
    assert paths.permalink(42) == "https://blog.example.com/posts/42/"
    assert paths.page_path(42) == "/posts/42/"


def test_page_path_missing_for_bare_host():
    assert PermalinkPagePaths("https://blog.example.com").page_path(1) is None
