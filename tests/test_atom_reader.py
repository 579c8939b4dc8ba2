"""
Tests for atom traversal and the leaf query operations
"""
import io

import pytest

from atomspector import AtomReader, AtomTypeFlags, ProtocolError, UnsupportedFormatError

from atom_builders import atom, meta, movie, tag_item, wide_atom


def events_of(data):
    reader = AtomReader(io.BytesIO(data))
    return [(a.name, a.flags) for a in reader.parse_atoms()]


def test_single_leaf_atom():
    reader = AtomReader(io.BytesIO(bytes.fromhex("0000000866726565")))
    atoms = list(reader.parse_atoms())

    assert len(atoms) == 1
    assert atoms[0].name == "free"
    assert atoms[0].size == 8
    assert atoms[0].data_size == 0
    assert atoms[0].flags == AtomTypeFlags.NONE
    assert atoms[0].consumed


def test_container_is_closed_by_end_event():
    f = io.BytesIO(atom("moov", atom("free")))
    reader = AtomReader(f)

    assert [(a.name, a.flags) for a in reader.parse_atoms()] == [
        ("moov", AtomTypeFlags.CONTAINER),
        ("free", AtomTypeFlags.NONE),
        ("moov", AtomTypeFlags.CONTAINER_END),
    ]
    assert f.tell() == 16


def test_extended_size_atom():
    atoms = list(AtomReader(io.BytesIO(wide_atom("mdat", b"\x00" * 8))).parse_atoms())

    assert [(a.name, a.size, a.data_size) for a in atoms] == [("mdat", 24, 8)]


def test_open_ended_atom_aborts_before_any_event():
    reader = AtomReader(io.BytesIO(bytes.fromhex("00000000") + b"mdat" + b"\x00" * 8))
    atoms = reader.parse_atoms()

    with pytest.raises(UnsupportedFormatError):
        next(atoms)
    assert reader.current_atom is None


def test_nesting_is_well_formed():
    stack = []
    for name, flags in events_of(movie(synopsis="Story")):
        if flags & AtomTypeFlags.CONTAINER:
            stack.append(name)
        elif flags & AtomTypeFlags.CONTAINER_END:
            assert stack.pop() == name
    assert stack == []


def test_movie_event_order():
    names = [
        name + ("/" if flags == AtomTypeFlags.CONTAINER_END else "")
        for name, flags in events_of(movie())
    ]
    assert names == [
        "ftyp",
        "moov",
        "mvhd",
        "trak",
        "tkhd",
        "mdia",
        "minf",
        "minf/",
        "mdia/",
        "trak/",
        "udta",
        "meta",
        "hdlr",
        "ilst",
        "\xa9nam",
        "ilst/",
        "meta/",
        "udta/",
        "moov/",
        "mdat",
    ]


def test_default_skip_moves_past_whole_atom():
    data = atom("free", b"x" * 10) + atom("skip", b"y" * 5)
    f = io.BytesIO(data)
    atoms = AtomReader(f).parse_atoms()

    first = next(atoms)
    assert f.tell() == 8
    second = next(atoms)
    assert f.tell() == first.size + 8
    assert second.name == "skip"
    assert list(atoms) == []
    assert f.tell() == len(data)


def test_skipper_prefix_is_discarded():
    data = meta(atom("hdlr", b"\x00" * 4))
    assert events_of(data) == [
        ("meta", AtomTypeFlags.CONTAINER | AtomTypeFlags.SKIPPER),
        ("hdlr", AtomTypeFlags.NONE),
        ("meta", AtomTypeFlags.CONTAINER_END),
    ]


def test_skipper_shorter_than_prefix_stays_in_bounds():
    f = io.BytesIO(atom("udta", atom("meta")) + atom("free") + atom("skip"))
    events = [(a.name, a.flags) for a in AtomReader(f).parse_atoms()]

    assert events == [
        ("udta", AtomTypeFlags.CONTAINER),
        ("meta", AtomTypeFlags.CONTAINER | AtomTypeFlags.SKIPPER),
        ("meta", AtomTypeFlags.CONTAINER_END),
        ("udta", AtomTypeFlags.CONTAINER_END),
        ("free", AtomTypeFlags.NONE),
        ("skip", AtomTypeFlags.NONE),
    ]
    assert f.tell() == 32


def test_budget_limits_sequence():
    f = io.BytesIO(atom("free", b"abc") + atom("skip"))
    atoms = list(AtomReader(f).parse_atoms(11))

    assert [a.name for a in atoms] == ["free"]
    assert f.tell() == 11


def test_caller_skip_of_container_prevents_dive():
    f = io.BytesIO(atom("moov", atom("free")) + atom("mdat"))
    reader = AtomReader(f)
    seen = []
    for a in reader.parse_atoms():
        seen.append((a.name, a.flags))
        if a.name == "moov":
            reader.skip_current_atom()

    assert seen == [("moov", AtomTypeFlags.CONTAINER), ("mdat", AtomTypeFlags.NONE)]
    assert f.tell() == 24


def test_end_event_becomes_current_and_skip_is_noop():
    f = io.BytesIO(atom("moov", atom("free")))
    reader = AtomReader(f)
    for a in reader.parse_atoms():
        if a.is_container_end:
            assert reader.current_atom is a
            position = f.tell()
            reader.skip_current_atom()
            assert a.consumed
            assert f.tell() == position


def test_stopping_early_leaves_stream_in_place():
    f = io.BytesIO(atom("free", b"abc") + atom("skip"))
    for a in AtomReader(f).parse_atoms():
        break
    assert f.tell() == 8


def test_read_string_data():
    f = io.BytesIO(tag_item("\xa9nam", "Grüße ✓") + atom("free"))
    reader = AtomReader(f)
    atoms = reader.parse_atoms()

    title = next(atoms)
    assert reader.get_current_atom_string_data() == "Grüße ✓"
    assert title.consumed
    assert [a.name for a in atoms] == ["free"]


def test_read_empty_string_data():
    reader = AtomReader(io.BytesIO(tag_item("ldes", "")))
    next(reader.parse_atoms())
    assert reader.get_current_atom_string_data() == ""


def test_tag_shorter_than_data_header_keeps_next_sibling():
    f = io.BytesIO(atom("\xa9nam", b"abcd") + atom("free"))
    reader = AtomReader(f)
    atoms = reader.parse_atoms()

    next(atoms)
    assert reader.get_current_atom_string_data() == ""
    assert f.tell() == 12
    assert [a.name for a in atoms] == ["free"]


def test_short_read_is_tolerated():
    full = tag_item("\xa9nam", "Hello world")
    reader = AtomReader(io.BytesIO(full[:-6]))
    next(reader.parse_atoms())
    assert reader.get_current_atom_string_data() == "Hello"


def test_read_twice_fails():
    reader = AtomReader(io.BytesIO(tag_item("\xa9nam", "Hello")))
    next(reader.parse_atoms())
    reader.get_current_atom_string_data()

    with pytest.raises(ProtocolError):
        reader.get_current_atom_string_data()
    with pytest.raises(ProtocolError):
        reader.skip_current_atom()


def test_skip_twice_fails():
    reader = AtomReader(io.BytesIO(atom("free", b"abc")))
    next(reader.parse_atoms())
    reader.skip_current_atom()

    with pytest.raises(ProtocolError):
        reader.skip_current_atom()


def test_no_current_atom_fails():
    reader = AtomReader(io.BytesIO(atom("free")))

    with pytest.raises(ProtocolError):
        reader.get_current_atom_string_data()
    with pytest.raises(ProtocolError):
        reader.skip_current_atom()


def test_consumed_after_default_skip_fails():
    reader = AtomReader(io.BytesIO(atom("free")))
    list(reader.parse_atoms())

    with pytest.raises(ProtocolError):
        reader.skip_current_atom()


@pytest.mark.parametrize("data", [atom("moov", atom("free")), atom("moov")])
def test_read_string_data_of_container_fails(data):
    reader = AtomReader(io.BytesIO(data))
    atoms = reader.parse_atoms()
    moov = next(atoms)

    with pytest.raises(ProtocolError):
        reader.get_current_atom_string_data()
    assert not moov.consumed


def test_read_string_data_of_container_end_fails():
    reader = AtomReader(io.BytesIO(atom("moov")))
    events = list(reader.parse_atoms())

    assert events[-1].is_container_end
    with pytest.raises(ProtocolError):
        reader.get_current_atom_string_data()


def test_iter_atoms_depths():
    reader = AtomReader(io.BytesIO(atom("moov", atom("udta", atom("free"))) + atom("mdat")))
    assert [(depth, a.name) for depth, a in reader.iter_atoms()] == [
        (0, "moov"),
        (1, "udta"),
        (2, "free"),
        (1, "udta"),
        (0, "moov"),
        (0, "mdat"),
    ]


def test_get_title():
    reader = AtomReader(io.BytesIO(movie(title="Hello")))
    assert reader.get_title() == "Hello"


def test_get_synopsis():
    reader = AtomReader(io.BytesIO(movie(title="Hello", synopsis="A short story.")))
    assert reader.get_synopsis() == "A short story."


def test_find_in_udta_meta_ilst_chain_without_moov():
    data = atom("udta", meta(atom("ilst", tag_item("\xa9nam", "Hello"))))
    assert AtomReader(io.BytesIO(data)).get_meta_atom_value("\xa9nam") == "Hello"


def test_find_first_match_wins():
    data = movie(title="First", extra_ilst=[tag_item("\xa9nam", "Second")])
    f = io.BytesIO(data)

    assert AtomReader(f).get_title() == "First"
    assert f.tell() < len(data)


def test_find_missing_tag_returns_none():
    assert AtomReader(io.BytesIO(movie())).get_synopsis() is None


def test_find_on_empty_stream_returns_none():
    assert AtomReader(io.BytesIO(b"")).get_title() is None


def test_find_never_descends_outside_chain():
    # An open-ended header inside trak would abort traversal if it was ever parsed.
    bad_trak = atom("trak", bytes.fromhex("00000000") + b"tkhd" + b"\x00" * 8)
    data = atom("moov", bad_trak + atom("udta", meta(atom("ilst", tag_item("\xa9nam", "Hello")))))

    with pytest.raises(UnsupportedFormatError):
        list(AtomReader(io.BytesIO(data)).parse_atoms())
    assert AtomReader(io.BytesIO(data)).get_title() == "Hello"


def test_find_stops_at_end_of_first_chain_container():
    # A title after the end of moov is never reached.
    data = atom("moov", atom("udta")) + tag_item("\xa9nam", "Hello")
    assert AtomReader(io.BytesIO(data)).get_title() is None


def test_find_does_not_see_items_inside_other_containers():
    data = atom("moov", atom("trak", atom("udta", meta(atom("ilst", tag_item("\xa9nam", "Track"))))))
    assert AtomReader(io.BytesIO(data)).get_title() is None


def test_find_reads_top_level_item_before_any_chain_end():
    data = atom("ftyp", b"isom") + tag_item("\xa9nam", "Loose")
    assert AtomReader(io.BytesIO(data)).get_title() == "Loose"


def test_find_container_name_fails():
    with pytest.raises(ProtocolError):
        AtomReader(io.BytesIO(movie())).get_meta_atom_value("moov")
