import json

import pytest

from affinity_recs import cli
from affinity_recs.affinity import AffinityAggregator
from affinity_recs.candidates import StatsUser
from affinity_recs.config import AffinityConfig

from conftest import FakeStatsfmClient


@pytest.fixture
def fake_client(sample_profiles, monkeypatch):
    client = FakeStatsfmClient(sample_profiles, failing={"broken"})
    monkeypatch.setattr(cli, "StatsfmClient", lambda: client)
    return client


def test_parse_candidate():
    assert cli.parse_candidate("123:alice").display_name == "alice"
    assert cli.parse_candidate("123").display_name == "123"
    with pytest.raises(ValueError):
        cli.parse_candidate(":nobody")


def test_load_candidates(tmp_path):
    path = tmp_path / "server.json"
    path.write_text(json.dumps([
        {"user_id": 5, "display_name": "Five"},
        {"user_id": "6", "can_compare": False, "profile_url": "https://stats.fm/6"},
    ]))

    first, second = cli.load_candidates(str(path))

    assert (first.user_id, first.display_name, first.can_compare) == ("5", "Five", True)
    assert (second.display_name, second.profile_url, second.can_compare) == ("6", "https://stats.fm/6", False)


def test_load_candidates_requires_ids(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps([{"display_name": "nameless"}]))
    with pytest.raises(ValueError):
        cli.load_candidates(str(path))


def test_main_json(fake_client, capsys):
    code = cli.main(["target", "--name", "Target", "-c", "twin:Twin", "-c", "broken:Broken",
                     "-c", "mirror:Mirror", "--delay", "0", "-r", "lifetime"])

    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert data["title"] == "Target's Lifetime Affinities"
    assert [a["display_name"] for a in data["affinities"]] == ["Twin", "Mirror"]
    assert data["skipped"][0]["display_name"] == "Broken"
    assert fake_client.calls == ["target", "twin", "broken", "mirror"]


def test_main_writes_output_file(fake_client, tmp_path, capsys):
    out = tmp_path / "affinities.csv"
    code = cli.main(["target", "-c", "twin", "-c", "stranger", "--delay", "0",
                     "--format", "csv", "-o", str(out)])

    assert code == 0
    lines = out.read_text().splitlines()
    assert lines[0].startswith("rank,user_id,display_name,pac_genres")
    assert lines[1].startswith('1,twin,"twin",100,100,100,100')
    assert lines[2].startswith('2,stranger,"stranger",0,0,0,0')
    assert str(out) in capsys.readouterr().out


def test_main_no_candidates(fake_client, capsys):
    assert cli.main(["target", "-c", "target"]) == 0
    assert "No other stats.fm users" in capsys.readouterr().out


def test_main_target_failure(sample_profiles, monkeypatch, capsys):
    client = FakeStatsfmClient(sample_profiles, failing={"target"})
    monkeypatch.setattr(cli, "StatsfmClient", lambda: client)

    assert cli.main(["target", "-c", "twin", "--delay", "0"]) == 1
    assert "target" in capsys.readouterr().err


def test_main_rejects_bad_p(fake_client, capsys):
    assert cli.main(["target", "-c", "twin", "--p", "1.5"]) == 1
    assert fake_client.calls == []


def test_simple_format(sample_profiles):
    aggregator = AffinityAggregator(
        client=FakeStatsfmClient(sample_profiles, failing={"partial"}),
        config=AffinityConfig(candidate_delay_seconds=0),
    )
    target = StatsUser(user_id="target", display_name="Target")
    output = aggregator.run(target, "4-weeks", [
        cli.parse_candidate("mirror:Mirror"),
        cli.parse_candidate("partial:Partial"),
    ])

    text = cli.format_output(output, "simple")

    assert text.splitlines()[0] == "Target's Past 4 Weeks Affinities"
    assert " 1. Mirror" in text
    assert "Method 1: 33% genres, 33% artists, 33% albums, 33% tracks" in text
    assert "Skipped Partial" in text
