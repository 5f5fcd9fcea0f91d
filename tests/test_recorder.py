"""Tests for observation recording and replay."""

import numpy as np
import pytest

from fingerspelling.observation import HandObservation, PushHandSource, Volume
from fingerspelling.recorder import ObservationPlayer, ObservationRecorder, ReplayHandSource


def make_observation(seed=0, fingers=2):
    rng = np.random.default_rng(seed)
    contour = (rng.random((12, 3)) * 200).round(1).tolist()
    return HandObservation(
        contour=contour,
        finger_count=fingers,
        location=(100.0, 100.0, 800.0),
        volume=Volume(width=90, height=140, depth=35),
        palm=(100.0, 110.0, 800.0),
        fingertips=[(80.0, 40.0, 790.0), (120.0, 40.0, 795.0)],
    )


class TestRecorder:
    def test_record_and_count(self):
        rec = ObservationRecorder()
        rec.start()
        for i in range(10):
            rec.add(make_observation(i))
        assert rec.stop() == 10

    def test_not_recording_ignores_frames(self):
        rec = ObservationRecorder()
        rec.add(make_observation())
        assert rec.frame_count == 0

    def test_records_from_source(self):
        source = PushHandSource()
        rec = ObservationRecorder()
        source.subscribe(rec.add)
        rec.start()
        source.push(make_observation())
        source.push(None)
        rec.stop()
        assert rec.frame_count == 2

    def test_save_and_load(self, tmp_path):
        rec = ObservationRecorder()
        rec.start()
        observation = make_observation(3)
        rec.add(observation)
        rec.add(None)
        rec.stop()

        path = tmp_path / "session.json"
        rec.save(path)

        player = ObservationPlayer.load(path)
        assert player.frame_count == 2
        frames = list(player.play())
        assert frames[0].observation == observation
        assert frames[1].observation is None

    def test_save_creates_parent(self, tmp_path):
        rec = ObservationRecorder()
        rec.start()
        rec.add(make_observation())
        rec.stop()
        path = tmp_path / "a" / "b" / "session.json"
        rec.save(path)
        assert path.exists()


class TestPlayer:
    def make_player(self, tmp_path, observations):
        rec = ObservationRecorder()
        rec.start()
        for o in observations:
            rec.add(o)
        rec.stop()
        path = tmp_path / "session.json"
        rec.save(path)
        return ObservationPlayer.load(path)

    def test_get_frame(self, tmp_path):
        player = self.make_player(tmp_path, [make_observation(1), make_observation(2)])
        assert player.get_frame(0) is not None
        assert player.get_frame(1) is not None
        assert player.get_frame(5) is None

    def test_last_observation_skips_empty(self, tmp_path):
        last_hand = make_observation(7)
        player = self.make_player(tmp_path, [make_observation(1), last_hand, None])
        assert player.last_observation() == last_hand

    def test_last_observation_none(self, tmp_path):
        player = self.make_player(tmp_path, [None, None])
        assert player.last_observation() is None

    def test_realtime_invalid_speed(self, tmp_path):
        player = self.make_player(tmp_path, [make_observation()])
        with pytest.raises(ValueError):
            list(player.play_realtime(speed=0))


class TestReplayHandSource:
    def test_run_pushes_frames(self, tmp_path):
        player = TestPlayer().make_player(tmp_path, [make_observation(1), None, make_observation(2)])
        source = ReplayHandSource(player, realtime=False)
        received = []
        source.subscribe(received.append)

        assert source.run() == 3
        assert received[1] is None
        assert received[0].finger_count == 2

    def test_stop_halts_replay(self, tmp_path):
        player = TestPlayer().make_player(tmp_path, [make_observation(i) for i in range(5)])
        source = ReplayHandSource(player, realtime=False)

        def stop_after_first(observation):
            source.stop()

        source.subscribe(stop_after_first)
        assert source.run() == 1


class TestHandObservation:
    def test_dict_round_trip(self):
        observation = make_observation()
        assert HandObservation.from_dict(observation.to_dict()) == observation

    def test_negative_fingers_rejected(self):
        with pytest.raises(ValueError):
            make_observation(fingers=-1)

    def test_has_fingers(self):
        assert make_observation(fingers=2).has_fingers
        assert not make_observation(fingers=0).has_fingers
