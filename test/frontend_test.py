from pathlib import Path
from unittest import mock

import numpy as np
import pygame
import pytest

from chipcore.frontend import (
    Frontend, FramePacer, ProgramLoadError, KEY_LOOKUP, PROGRAM_CAPACITY, TONE_MILLISECONDS,
    main, parse_arguments, read_program,
)
from chipcore.machine import Machine, GAME_START_ADDRESS


def write_game(directory: Path, name: str, program: bytes) -> Path:
    path = directory / name
    path.write_bytes(program)
    return path


class TestReadProgram:
    def test_read_program(self, tmp_path):
        path = write_game(tmp_path, "maze.ch8", bytes.fromhex("a21e"))
        assert read_program(path) == bytes.fromhex("a21e"), "Program bytes were not read."

    def test_read_program_chip8_suffix(self, tmp_path):
        path = write_game(tmp_path, "maze.chip8", bytes.fromhex("a21e"))
        assert read_program(path) == bytes.fromhex("a21e"), "Program with the .chip8 suffix was not read."

    def test_missing_file(self, tmp_path):
        with pytest.raises(ProgramLoadError):
            read_program(tmp_path / "missing.ch8")

    def test_wrong_suffix(self, tmp_path):
        path = write_game(tmp_path, "maze.txt", bytes.fromhex("a21e"))
        with pytest.raises(ProgramLoadError):
            read_program(path)

    def test_too_large(self, tmp_path):
        path = write_game(tmp_path, "huge.ch8", bytes(PROGRAM_CAPACITY + 1))
        with pytest.raises(ProgramLoadError):
            read_program(path)


class TestFramePacer:
    def test_whole_rate(self):
        pacer = FramePacer(600, 60)
        assert [pacer.steps_for_frame() for _ in range(3)] == [10, 10, 10], "Steps per frame incorrect for an even rate."

    def test_fractional_rate(self):
        pacer = FramePacer(500, 60)
        steps = [pacer.steps_for_frame() for _ in range(60)]
        assert sum(steps) == 500, "Instructions were lost over a second of frames."
        assert set(steps) == {8, 9}, "Instructions were not spread evenly over the frames."

    def test_slow_rate(self):
        pacer = FramePacer(30, 60)
        assert [pacer.steps_for_frame() for _ in range(4)] == [0, 1, 0, 1], "Rates below the frame rate were not carried over."

    def test_reset(self):
        pacer = FramePacer(30, 60)
        pacer.steps_for_frame()
        pacer.reset()
        assert pacer.steps_for_frame() == 0, "Carried instructions survived a reset."

    def test_invalid_rate(self):
        with pytest.raises(ValueError):
            FramePacer(0)


class TestFrontend:
    def setup_method(self):
        self.machine = Machine()
        self.frontend = Frontend(self.machine, 600)

    def test_key_lookup_covers_keypad(self):
        assert sorted(KEY_LOOKUP.values()) == list(range(16)), "Not every key of the keypad is mapped."

    def test_key_events(self):
        self.frontend.handle_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_v))
        assert self.machine.keys[15], "Key press was not forwarded to the machine."

        self.frontend.handle_event(pygame.event.Event(pygame.KEYUP, key=pygame.K_v))
        assert not self.machine.keys[15], "Key release was not forwarded to the machine."

    def test_unmapped_key(self):
        self.frontend.handle_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_p))
        assert not any(self.machine.keys), "An unmapped key changed the keypad."

    def test_quit_event(self):
        self.frontend.handle_event(pygame.event.Event(pygame.QUIT))
        assert not self.frontend.running, "Quit event did not stop the loop."

    @mock.patch.object(Frontend, "load_game")
    def test_load_key(self, mock_method):
        self.frontend.handle_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_l))
        mock_method.assert_called_with()

        mock_method.reset_mock()
        self.frontend.selecting_game = True
        self.frontend.handle_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_l))
        mock_method.assert_not_called()

    def test_load_game_from_path(self, tmp_path):
        self.machine.registers[2] = 9
        path = write_game(tmp_path, "maze.ch8", bytes.fromhex("a21e"))
        self.frontend.load_game(path)
        assert self.frontend.game_loaded, "Game was not marked as loaded."
        assert self.machine.memory[GAME_START_ADDRESS:GAME_START_ADDRESS + 2] == bytes.fromhex("a21e"), "Game was not loaded into memory."
        assert self.machine.registers[2] == 0, "Machine was not reset before loading."

    @mock.patch("chipcore.frontend.easygui.msgbox")
    def test_load_game_bad_path(self, mock_msgbox, tmp_path):
        self.frontend.load_game(tmp_path / "missing.ch8")
        assert not self.frontend.game_loaded, "A missing game was marked as loaded."
        mock_msgbox.assert_called_once()

    @mock.patch("chipcore.frontend.easygui.msgbox")
    @mock.patch("chipcore.frontend.easygui.fileopenbox", return_value=None)
    def test_load_game_nothing_picked(self, mock_fileopenbox, mock_msgbox):
        self.frontend.load_game()
        mock_fileopenbox.assert_called_once()
        mock_msgbox.assert_called_once()
        assert not self.frontend.game_loaded, "Game marked as loaded when none was picked."
        assert not self.frontend.selecting_game, "Still selecting a game after the picker closed."

    def test_load_game_picked(self, tmp_path):
        path = write_game(tmp_path, "maze.ch8", bytes.fromhex("6a05"))
        with mock.patch("chipcore.frontend.easygui.fileopenbox", return_value=str(path)):
            self.frontend.load_game()
        assert self.frontend.game_loaded, "Picked game was not loaded."
        assert self.machine.memory[GAME_START_ADDRESS] == 0x6a, "Picked game was not loaded into memory."

    def test_run_frame_without_game(self):
        self.frontend.run_frame()
        assert self.machine.program_counter == GAME_START_ADDRESS, "Machine ran without a game loaded."

    def test_run_frame(self):
        self.machine.load(bytes.fromhex("7101" "1200"))
        self.frontend.game_loaded = True
        self.frontend.sound_player = mock.MagicMock()
        self.machine.sound_timer = 1
        self.machine.delay_timer = 5

        self.frontend.run_frame()
        assert self.machine.registers[1] == 5, "The frame's share of instructions was not executed."
        assert self.machine.delay_timer == 4, "Timers were not ticked once."
        self.frontend.sound_player.play.assert_called_once_with(maxtime=TONE_MILLISECONDS)

        self.frontend.run_frame()
        self.frontend.sound_player.play.assert_called_once_with(maxtime=TONE_MILLISECONDS)

    @mock.patch("chipcore.frontend.easygui.msgbox")
    def test_run_frame_fault(self, mock_msgbox):
        self.machine.load(bytes.fromhex("0123"))
        self.frontend.game_loaded = True

        self.frontend.run_frame()
        assert not self.frontend.game_loaded, "Game kept running after a fault."
        assert self.machine.program_counter == GAME_START_ADDRESS, "Program counter moved by the faulted instruction."
        mock_msgbox.assert_called_once()

    def test_surface_pixels(self):
        self.machine.pixels[10, 20] = True
        pixels = self.frontend.surface_pixels()
        assert pixels.shape == (64, 32), "Surface pixels have the wrong dimensions."
        assert pixels.dtype == np.ubyte, "Surface pixels are not palette indices."
        assert pixels[10, 20] == 1 and pixels.sum() == 1, "Surface pixels do not match the display."


class TestCommandLine:
    def test_defaults(self):
        arguments = parse_arguments([])
        assert arguments.game is None, "A game was chosen without one being given."
        assert arguments.speed == 500, "Default speed is incorrect."
        assert not arguments.debug, "Debug logging enabled by default."

    def test_arguments(self):
        arguments = parse_arguments(["games/maze.ch8", "--speed", "700", "--debug"])
        assert arguments.game == Path("games/maze.ch8"), "Game path not parsed."
        assert arguments.speed == 700, "Speed not parsed."
        assert arguments.debug, "Debug flag not parsed."

    @mock.patch.object(Frontend, "event_loop")
    def test_main(self, mock_method):
        main(["maze.ch8", "--speed", "900", "--debug"])
        mock_method.assert_called_once_with(Path("maze.ch8"))
