import pytest

from cors_proxy.cors.path_matcher import compile_pattern, is_path_allowed, matches


class TestExactPatterns:
    """Patterns without a wildcard match only the identical path."""

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/exact/path", True),
            ("/exact/path/", False),
            ("/exact", False),
            ("/Exact/Path", False),
            ("/exact/path/more", False),
            ("prefix/exact/path", False),
        ],
    )
    def test_exact_match(self, path, expected):
        assert is_path_allowed(path, ["/exact/path"]) is expected

    def test_empty_pattern_matches_only_empty_path(self):
        assert matches("", "")
        assert not matches("/", "")


class TestSegmentWildcard:
    def test_matches_one_segment(self):
        assert is_path_allowed("/api/users", ["/api/*"])

    def test_does_not_cross_slash(self):
        assert not is_path_allowed("/api/v1/users", ["/api/*"])

    def test_requires_literal_slash(self):
        assert not is_path_allowed("/api", ["/api/*"])

    def test_zero_width_wildcard(self):
        assert is_path_allowed("/api/", ["/api/*"])

    def test_wildcard_in_middle(self):
        patterns = ["/auth/*/callback"]
        assert is_path_allowed("/auth/google/callback", patterns)
        assert is_path_allowed("/auth/github/callback", patterns)
        assert not is_path_allowed("/auth/a/b/callback", patterns)
        assert not is_path_allowed("/auth/google/callback/extra", patterns)

    def test_wildcard_within_segment(self):
        assert matches("/files/report.pdf", "/files/*.pdf")
        assert not matches("/files/report.txt", "/files/*.pdf")

    def test_double_asterisk_behaves_like_single(self):
        assert matches("/api/users", "/api/**")
        assert matches("/api/", "/api/**")
        assert not matches("/api/v1/users", "/api/**")


class TestLiteralMetacharacters:
    @pytest.mark.parametrize(
        "pattern,matching,not_matching",
        [
            ("/v1.0/status", "/v1.0/status", "/v1x0/status"),
            ("/a+b", "/a+b", "/aab"),
            ("/^start$", "/^start$", "/start"),
            ("/x{2}", "/x{2}", "/xx"),
            ("/(group)", "/(group)", "/group"),
            ("/a|b", "/a|b", "/a"),
            ("/[abc]", "/[abc]", "/a"),
            ("/back\\slash", "/back\\slash", "/backslash"),
            ("/maybe?", "/maybe?", "/mayb"),
        ],
    )
    def test_metacharacters_are_literal(self, pattern, matching, not_matching):
        assert matches(matching, pattern)
        assert not matches(not_matching, pattern)

    def test_metacharacters_next_to_wildcard(self):
        assert matches("/api/v2.json", "/api/*.json")
        assert not matches("/api/v2xjson", "/api/*.json")


class TestPatternList:
    def test_any_pattern_suffices(self):
        patterns = ["/health", "/api/*", "/auth/*/callback"]
        assert is_path_allowed("/health", patterns)
        assert is_path_allowed("/api/x", patterns)
        assert is_path_allowed("/auth/x/callback", patterns)
        assert not is_path_allowed("/other", patterns)

    def test_empty_pattern_list_allows_nothing(self):
        assert not is_path_allowed("/api/users", [])


def test_compiled_patterns_are_memoized():
    assert compile_pattern("/memo/*") is compile_pattern("/memo/*")
