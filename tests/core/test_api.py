"""Tests for the file based API: load, load_all, dump, dump_all."""

import io

import pytest
import typedyaml as ty


class TestLoad:
    """Test reading from paths and file objects."""

    def test_load_path(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text('name: x\nport: 1\n', encoding='utf-8')
        assert ty.load(path) == {'name': 'x', 'port': 1}
        assert ty.load(str(path), dict) == {'name': 'x', 'port': 1}

    def test_load_text_file(self):
        assert ty.load(io.StringIO('a: 1\n')) == {'a': 1}

    def test_load_binary_file(self):
        assert ty.load(io.BytesIO('a: é\n'.encode('utf-8'))) == {'a': 'é'}

    def test_load_all(self, tmp_path):
        path = tmp_path / 'docs.yaml'
        path.write_text('a: 1\n---\nb: 2\n', encoding='utf-8')
        assert ty.load_all(path) == [{'a': 1}, {'b': 2}]

    def test_error_names_file(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text('a: 1\na: 2\n', encoding='utf-8')
        with pytest.raises(ty.DuplicateKeyError) as exc_info:
            ty.load(path)
        assert exc_info.value.mark.name == str(path)
        assert 'bad.yaml' in str(exc_info.value)

    def test_explicit_name(self):
        with pytest.raises(ty.UnknownAnchorError) as exc_info:
            ty.load(io.StringIO('a: *x\n'), name='inline')
        assert exc_info.value.mark.name == 'inline'

    def test_recursion_limit_passed_through(self):
        with pytest.raises(ty.RecursionLimitError):
            ty.load(io.StringIO('[[[1]]]'), recursion_limit=2)


class TestDump:
    """Test writing to paths and file objects."""

    def test_dump_path(self, tmp_path):
        path = tmp_path / 'out.yaml'
        ty.dump({'a': [1, 2]}, path)
        assert path.read_text(encoding='utf-8') == 'a:\n  - 1\n  - 2\n'

    def test_dump_text_file(self):
        stream = io.StringIO()
        ty.dump({'a': 'é'}, stream)
        assert stream.getvalue() == 'a: é\n'

    def test_dump_binary_file(self):
        stream = io.BytesIO()
        ty.dump({'a': 'é'}, stream)
        assert stream.getvalue() == 'a: é\n'.encode('utf-8')

    def test_dump_options(self):
        stream = io.StringIO()
        ty.dump({'a': {'b': 1}}, stream, indent=4)
        assert stream.getvalue() == 'a:\n    b: 1\n'

    def test_dump_all(self, tmp_path):
        path = tmp_path / 'docs.yaml'
        ty.dump_all([{'a': 1}, {'b': 2}], path)
        assert ty.load_all(path) == [{'a': 1}, {'b': 2}]

    def test_dump_load_round_trip(self, tmp_path):
        data = {'name': 'svc', 'ports': [80, 443], 'ratio': 0.1, 'tags': {'env': 'prod'}}
        path = tmp_path / 'rt.yaml'
        ty.dump(data, path)
        assert ty.load(path, dict) == data
