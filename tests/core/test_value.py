"""Tests for the Value Tree: construction, equality, hashing, indexing."""

import math

import pytest
import typedyaml as ty
from typedyaml import Value, Null, Bool, Number, String, Sequence, Mapping, Tagged


class TestConstruction:
    """Test building values directly and from Python data."""

    def test_from_python_scalars(self):
        """Python scalars map to the matching variants."""
        assert isinstance(ty.from_python(None), Null)
        assert isinstance(ty.from_python(True), Bool)
        assert isinstance(ty.from_python(3), Number)
        assert isinstance(ty.from_python(3.5), Number)
        assert isinstance(ty.from_python('x'), String)

    def test_from_python_nested(self):
        """Lists and dicts become sequences and mappings."""
        value = ty.from_python({'a': [1, 2], 'b': {'c': None}})
        assert isinstance(value, Mapping)
        assert isinstance(value['a'], Sequence)
        assert value['b']['c'].is_null()

    def test_from_python_bytes(self):
        """Bytes become a !!binary tagged base64 string."""
        value = ty.from_python(b'hello')
        assert isinstance(value, Tagged)
        assert value.tag == 'tag:yaml.org,2002:binary'
        assert value.to_python() == b'hello'

    def test_from_python_rejects_unknown(self):
        """Arbitrary objects cannot be converted."""
        with pytest.raises(TypeError):
            ty.from_python(object())

    def test_number_rejects_bool(self):
        """A bool is not a number."""
        with pytest.raises(TypeError):
            Number(True)

    def test_tag_normalized(self):
        """A bare tag name gets the local '!' prefix."""
        assert Tagged('Point', 1).tag == '!Point'
        assert Tagged('!Point', 1).name == 'Point'

    def test_empty_tag_rejected(self):
        """Empty tags are refused."""
        with pytest.raises(ValueError):
            Tagged('', 1)
        with pytest.raises(ValueError):
            Tagged('!', 1)


class TestEquality:
    """Test structural equality and hashing."""

    def test_int_and_float_differ(self):
        """Number(1) and Number(1.0) are different values."""
        assert Number(1) != Number(1.0)

    def test_nan_equals_nan(self):
        """NaN is equal to itself so trees compare sanely."""
        assert Number(math.nan) == Number(math.nan)
        assert hash(Number(math.nan)) == hash(Number(float('nan')))

    def test_mapping_order_independent(self):
        """Mapping equality ignores insertion order."""
        a = Mapping.from_pairs([('x', 1), ('y', 2)])
        b = Mapping.from_pairs([('y', 2), ('x', 1)])
        assert a == b
        assert hash(a) == hash(b)

    def test_compare_with_python(self):
        """Values compare equal to the equivalent Python data."""
        assert ty.from_python({'a': [1, 'b']}) == {'a': [1, 'b']}
        assert String('x') == 'x'
        assert Bool(True) != 1

    def test_anchor_not_part_of_equality(self):
        """Anchors are metadata."""
        a = Number(1)
        a.anchor = 'x'
        assert a == Number(1)

    def test_tagged_equality(self):
        """Tagged values compare tag and payload."""
        assert Tagged('!A', 1) == Tagged('!A', 1)
        assert Tagged('!A', 1) != Tagged('!B', 1)
        assert Tagged('!A', 1) != Number(1)

    def test_collections_as_keys(self):
        """Sequences and mappings are hashable and usable as keys."""
        key = Sequence([1, 2])
        mapping = Mapping.from_pairs([(key, 'x')])
        assert mapping[Sequence([1, 2])] == 'x'
        assert mapping[[1, 2]] == 'x'


class TestIndexing:
    """Test get() and [] on sequences, mappings and scalars."""

    def setup_method(self):
        self.doc = ty.loads("name: Alice\nports: [80, 443]\n1: one\n")

    def test_mapping_lookup(self):
        """String keys look up mapping entries."""
        assert self.doc['name'] == 'Alice'
        assert self.doc.get('name') == 'Alice'

    def test_sequence_index(self):
        """Integers index sequences."""
        assert self.doc['ports'][1] == 443
        assert self.doc['ports'].get(5) is None

    def test_numeric_mapping_key(self):
        """Integers index mappings by numeric key."""
        assert self.doc[1] == 'one'

    def test_get_miss_returns_default(self):
        """A miss through get() is None or the default, never an error."""
        assert self.doc.get('missing') is None
        assert self.doc.get('missing', 7) == 7
        assert self.doc['name'].get('x') is None
        assert self.doc.get(object()) is None

    def test_getitem_miss_raises(self):
        """A miss through [] raises."""
        with pytest.raises(KeyError):
            self.doc['missing']
        with pytest.raises(IndexError):
            self.doc['ports'][5]
        with pytest.raises(TypeError):
            self.doc['ports']['x']
        with pytest.raises(TypeError):
            self.doc['name'][0]

    def test_index_through_tag(self):
        """Indexing looks through tags."""
        doc = ty.loads("!Point {x: 1}\n")
        assert doc['x'] == 1
        assert doc.get_tag() == '!Point'


class TestQueries:
    """Test is_* and as_* helpers."""

    def test_is_and_as(self):
        """Shape queries report the variant and its payload."""
        doc = ty.loads("[null, true, 1, 1.5, s]")
        null, flag, integer, real, text = doc.value
        assert null.is_null() and null.as_null() == ()
        assert flag.is_bool() and flag.as_bool() is True
        assert integer.is_int() and integer.as_int() == 1
        assert real.is_float() and real.as_float() == 1.5
        assert integer.as_float() == 1.0
        assert text.is_string() and text.as_str() == 's'
        assert text.as_int() is None
        assert doc.as_sequence() is doc
        assert doc.as_mapping() is None

    def test_queries_see_through_tags(self):
        """A tagged scalar still answers as its payload."""
        value = Tagged('!Port', 80)
        assert value.is_int()
        assert value.as_int() == 80
        assert value.is_tagged()
        assert not Number(80).is_tagged()

    def test_number_width(self):
        """i64/u64/f64 classification."""
        assert Number(-1).is_i64()
        assert not Number(-1).is_u64()
        assert Number(2 ** 64 - 1).is_u64()
        assert not Number(2 ** 64 - 1).is_i64()
        assert Number(0.5).is_f64()
        assert Number(math.nan).is_nan()


class TestMutation:
    """Test mapping and sequence editing."""

    def test_insert_and_remove(self):
        """insert() returns the previous value; remove() returns the removed one."""
        mapping = Mapping()
        assert mapping.insert('a', 1) is None
        assert mapping.insert('a', 2) == 1
        assert len(mapping) == 1
        assert mapping.remove('a') == 2
        assert mapping.remove('a') is None

    def test_from_pairs_refuses_duplicates(self):
        """Building from pairs with repeated keys fails."""
        with pytest.raises(ty.DuplicateKeyError):
            Mapping.from_pairs([('a', 1), ('a', 2)])

    def test_constructor_refuses_duplicate_pairs(self):
        """The constructor checks pairs the same way as from_pairs()."""
        with pytest.raises(ty.DuplicateKeyError, match="'a'"):
            Mapping([('a', 1), ('a', 2)])
        with pytest.raises(ty.DuplicateKeyError):
            Mapping([(1, 'x'), (Number(1), 'y')])

    def test_constructor_keeps_distinct_numbers(self):
        """Integer, float and boolean keys stay apart."""
        mapping = Mapping([(Number(1), 'int'), (Number(1.0), 'float'), (Bool(True), 'bool')])
        assert len(mapping) == 3
        assert mapping[Number(1.0)] == 'float'

    def test_copy_is_deep(self):
        """copy() detaches the whole tree."""
        original = ty.from_python({'a': [1]})
        duplicate = original.copy()
        duplicate['a'].append(2)
        assert original == {'a': [1]}
        assert duplicate == {'a': [1, 2]}

    def test_to_python_unhashable_key(self):
        """Collection keys stay Values in to_python()."""
        doc = ty.loads("? [1, 2]\n: x\n")
        result = doc.to_python()
        assert result == {Sequence([1, 2]): 'x'}


class TestApplyMerge:
    """Test apply_merge() on trees built through the API."""

    def test_merge_single_mapping(self):
        """Explicit keys win over merged ones."""
        value = ty.from_python({'<<': {'a': 1, 'b': 2}, 'b': 3})
        value.apply_merge()
        assert value == {'a': 1, 'b': 3}

    def test_merge_list_first_wins(self):
        """Among merged mappings, the earlier one wins."""
        value = ty.from_python({'<<': [{'a': 1}, {'a': 2, 'c': 3}]})
        value.apply_merge()
        assert value == {'a': 1, 'c': 3}

    def test_merge_nested(self):
        """Merges inside nested collections are applied too."""
        value = ty.from_python({'x': [{'<<': {'a': 1}}]})
        value.apply_merge()
        assert value == {'x': [{'a': 1}]}

    @pytest.mark.parametrize('merged', [1, 'text', None])
    def test_merge_scalar(self, merged):
        """Merging a scalar is an error."""
        value = ty.from_python({'<<': merged})
        with pytest.raises(ty.InvalidMergeError):
            value.apply_merge()

    def test_merge_sequence_element(self):
        """A sequence inside the merge list is an error."""
        value = ty.from_python({'<<': [[{'a': 1}]]})
        with pytest.raises(ty.InvalidMergeError, match='sequence'):
            value.apply_merge()

    def test_merge_tagged(self):
        """A tagged merge source is an error."""
        value = Mapping.from_pairs([('<<', Tagged('!T', {'a': 1}))])
        with pytest.raises(ty.InvalidMergeError, match='tagged'):
            value.apply_merge()
