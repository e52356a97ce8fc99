from marketplace.domain.selection import Selection


def test_key_is_canonical_regardless_of_option_order():
    a = Selection.of(3, [9, 7])
    b = Selection.of(3, [7, 9, 7])

    assert a == b
    assert a.key == "v3|o7,9"


def test_empty_selection_has_empty_key():
    selection = Selection.of()

    assert selection.is_empty
    assert selection.key == ""


def test_options_without_variant():
    assert Selection.of(None, [4]).key == "o4"
