"""Unit tests for image reconciliation matching."""

from unittest.mock import patch

import pytest

from src.stocktransfer.core.matcher import ImageMatcher, MatchStrategy


def _folder(tmp_path, *names):
    folder = tmp_path / "images"
    folder.mkdir()
    for name in names:
        (folder / name).write_bytes(name.encode())
    return folder


class TestImageMatcher:
    """Test ImageMatcher strategy precedence."""

    def test_exact_match(self, tmp_path):
        matcher = ImageMatcher(_folder(tmp_path, "7_shoe.png", "shoe.png"))

        match = matcher.match("7_shoe.png")

        assert match.file_name == "7_shoe.png"
        assert match.strategy == MatchStrategy.EXACT
        assert match.path == tmp_path / "images" / "7_shoe.png"

    def test_base_name_preferred_over_fuzzy(self, tmp_path):
        """Test hint 7_shoe.png picks shoe.png, not 9_shoe.png."""
        matcher = ImageMatcher(_folder(tmp_path, "9_shoe.png", "shoe.png"))

        match = matcher.match("7_shoe.png")

        assert match.file_name == "shoe.png"
        assert match.strategy == MatchStrategy.BASE_NAME

    def test_base_name_strips_only_first_prefix(self, tmp_path):
        matcher = ImageMatcher(_folder(tmp_path, "my_photo.jpg"))

        match = matcher.match("12_my_photo.jpg")

        assert match.file_name == "my_photo.jpg"
        assert match.strategy == MatchStrategy.BASE_NAME

    def test_fuzzy_candidate_contains_hint_tail(self, tmp_path):
        matcher = ImageMatcher(_folder(tmp_path, "other.png", "IMG_Shoe.PNG.bak"))

        match = matcher.match("7_shoe.png")

        assert match.file_name == "IMG_Shoe.PNG.bak"
        assert match.strategy == MatchStrategy.FUZZY

    def test_fuzzy_hint_tail_contains_candidate_stem(self, tmp_path):
        """Test candidate with its image extension stripped inside the hint tail."""
        matcher = ImageMatcher(_folder(tmp_path, "boot.jpeg", "zzz.webp"))

        match = matcher.match("3_bigboot.jpg")

        assert match.file_name == "boot.jpeg"
        assert match.strategy == MatchStrategy.FUZZY

    def test_fuzzy_known_false_positive(self, tmp_path):
        """Test the inherited substring rule: 'shoe.png' also matches 'snowshoe.png'."""
        matcher = ImageMatcher(_folder(tmp_path, "a.png", "snowshoe.png"))

        match = matcher.match("4_shoe.png")

        assert match.file_name == "snowshoe.png"
        assert match.strategy == MatchStrategy.FUZZY

    def test_hint_with_trailing_underscore_takes_first_file(self, tmp_path):
        """Test an empty hint tail matching the first file in sorted order."""
        matcher = ImageMatcher(_folder(tmp_path, "b.png", "a.jpg"))

        match = matcher.match("5_")

        assert match.file_name == "a.jpg"
        assert match.strategy == MatchStrategy.FUZZY

    def test_single_file_fallback(self, tmp_path):
        matcher = ImageMatcher(_folder(tmp_path, "unrelated.gif"))

        match = matcher.match("5_xyz.png")

        assert match.file_name == "unrelated.gif"
        assert match.strategy == MatchStrategy.SINGLE

    def test_no_match_returns_none(self, tmp_path):
        matcher = ImageMatcher(_folder(tmp_path, "x.gif", "y.gif"))

        assert matcher.match("5_abc.png") is None

    def test_missing_folder_behaves_empty(self, tmp_path):
        matcher = ImageMatcher(tmp_path / "absent")

        assert matcher.files == []
        assert matcher.match("1_a.jpg") is None

    def test_directories_are_not_candidates(self, tmp_path):
        folder = _folder(tmp_path, "a.jpg")
        (folder / "nested").mkdir()

        assert ImageMatcher(folder).files == ["a.jpg"]

    def test_listing_error_never_raises(self, tmp_path):
        matcher = ImageMatcher(_folder(tmp_path, "a.jpg"))

        with patch.object(ImageMatcher, "_match", side_effect=OSError("boom")):
            assert matcher.match("1_a.jpg") is None

    @pytest.mark.parametrize("hint", [None, ""])
    def test_empty_hint_uses_single_file_only(self, tmp_path, hint):
        assert ImageMatcher(_folder(tmp_path, "only.png")).match(hint).strategy == (
            MatchStrategy.SINGLE
        )
