import pytest

from atom_builders import movie


@pytest.fixture
def movie_path(tmp_path):
    path = tmp_path / "movie.m4v"
    path.write_bytes(movie(title="Hello", synopsis="A short story."))
    return str(path)
