import argparse
import logging
import sys
import pygame
import easygui

import numpy as np

from typing import List, Optional

from pathlib import Path

from chipcore.machine import Machine, MachineError, GAME_START_ADDRESS, MEMORY_SIZE, SCREEN_WIDTH, SCREEN_HEIGHT

# Set up the logging
logger = logging.getLogger(__name__)

# Constants
SCALED_SCREEN_WIDTH = 800
SCALED_SCREEN_HEIGHT = 400
FRAMES_PER_SECOND = 60
INSTRUCTIONS_PER_SECOND = 500
SOUND_FREQUENCY = 44100
SOUND_BUFFER = 4096
TONE_HZ = 550
TONE_MILLISECONDS = 1000 // FRAMES_PER_SECOND
PROGRAM_SUFFIXES = (".chip8", ".ch8")
PROGRAM_CAPACITY = MEMORY_SIZE - GAME_START_ADDRESS
GAMES_PATH = str(Path(__file__).resolve().parent.parent.joinpath("games/.chip8"))

COLOUR_PALETTE = [(0, 0, 0), (0, 255, 0)]

KEY_LOOKUP = {
    pygame.K_1: 1,
    pygame.K_q: 4,
    pygame.K_a: 7,
    pygame.K_z: 10,
    pygame.K_2: 2,
    pygame.K_w: 5,
    pygame.K_s: 8,
    pygame.K_x: 0,
    pygame.K_3: 3,
    pygame.K_e: 6,
    pygame.K_d: 9,
    pygame.K_c: 11,
    pygame.K_4: 12,
    pygame.K_r: 13,
    pygame.K_f: 14,
    pygame.K_v: 15,
}


class ProgramLoadError(Exception):
    """
    A program file could not be read into the machine.
    """


def read_program(path: Path) -> bytes:
    """
    Read a program image from disk, checking that it looks like a program and fits in memory.
    :param path: The path of the program file.
    :return: The raw program bytes.
    """
    if not path.exists():
        raise ProgramLoadError(f"Game could not be loaded as the path does not exist!  Path: {path}.")

    if path.suffix not in PROGRAM_SUFFIXES:
        raise ProgramLoadError(f"Game does not appear to be a CHIP-8 game as the file type is not one of {', '.join(PROGRAM_SUFFIXES)}.  Path: {path}.")

    with path.open("rb") as file:
        program = file.read()

    if len(program) > PROGRAM_CAPACITY:
        raise ProgramLoadError(f"Game is {len(program)} bytes but only {PROGRAM_CAPACITY} bytes fit in memory.  Path: {path}.")

    return program


class FramePacer:
    """
    Spreads an instruction rate over display frames, carrying fractional instructions over to the next frame.
    """
    def __init__(self, instructions_per_second: int = INSTRUCTIONS_PER_SECOND, frames_per_second: int = FRAMES_PER_SECOND):
        if instructions_per_second <= 0:
            raise ValueError(f"The instruction rate must be positive, got {instructions_per_second}.")

        self.instructions_per_second = instructions_per_second
        self.frames_per_second = frames_per_second
        # Pending instructions, in units of 1 / frames_per_second
        self.carry = 0

    def reset(self) -> None:
        self.carry = 0

    def steps_for_frame(self) -> int:
        """
        The number of instructions to execute during the next frame.
        """
        self.carry += self.instructions_per_second
        steps = self.carry // self.frames_per_second
        self.carry %= self.frames_per_second
        return steps


class Frontend:
    """
    A pygame window which drives a Machine: renders its display, plays its tone, feeds it keys and paces it.
    """
    def __init__(self, machine: Machine, instructions_per_second: int = INSTRUCTIONS_PER_SECOND):
        """
        Constructor.  No window is opened until open_window is called.
        :param machine: The machine to drive.
        :param instructions_per_second: How many instructions to execute each second.
        """
        self.machine = machine
        self.pacer = FramePacer(instructions_per_second)
        self.screen: Optional[pygame.Surface] = None
        self.inter_screen: Optional[pygame.Surface] = None
        self.sound_player: Optional[pygame.mixer.Sound] = None
        self.game_loaded = False
        self.selecting_game = False
        self.running = True

    def open_window(self) -> None:
        """
        Initialize pygame, open the window and prepare the tone.
        """
        pygame.mixer.init(SOUND_FREQUENCY, -16, 1, SOUND_BUFFER)
        pygame.init()
        pygame.display.init()

        # Sound is weird; borrowing some of this chunk from here, I claim no credit for it: http://shallowsky.com/blog/programming/python-play-chords.html
        length = SOUND_FREQUENCY / TONE_HZ
        omega = np.pi * 2 / length
        x_values = np.arange(int(length)) * omega
        one_cycle = SOUND_BUFFER * np.sin(x_values)
        sound_wave = np.resize(one_cycle, (SOUND_FREQUENCY,)).astype(np.int16)
        self.sound_player = pygame.sndarray.make_sound(sound_wave)

        pygame.display.set_caption("ChipCore")
        self.screen = pygame.display.set_mode((SCALED_SCREEN_WIDTH, SCALED_SCREEN_HEIGHT), 0, 8)
        self.screen.set_palette(COLOUR_PALETTE)
        self.inter_screen = pygame.Surface((SCREEN_WIDTH, SCREEN_HEIGHT), 0, 8)

    def load_game(self, path: Optional[Path] = None) -> None:
        """
        Reset the machine and load a game into it, asking for one with a file picker if no path is given.
        :param path: The path of the game, or None to pick one.
        """
        if path is None:
            self.selecting_game = True
            file_name = easygui.fileopenbox(title="Select a Game", default=GAMES_PATH, filetypes=[["*.chip8", "*.ch8", "CHIP-8"]])
            self.selecting_game = False

            if not file_name:
                easygui.msgbox("Pick a game to play!  Press the L key to re-open the game picker.", "No Game Selected")
                return
            path = Path(file_name)

        try:
            program = read_program(path)
        except ProgramLoadError as error:
            logger.error(str(error))
            easygui.msgbox(str(error), "Game Not Loaded")
            return

        logger.debug(f"Loading game at path {path}.")
        self.machine.reset()
        self.machine.load(program)
        self.pacer.reset()
        self.game_loaded = True

        if self.screen is not None:
            pygame.display.set_caption(path.stem)

    def handle_event(self, event: pygame.event.Event) -> None:
        """
        React to a single pygame event.
        :param event: The event to handle.
        """
        if event.type == pygame.QUIT:
            self.running = False
        elif event.type == pygame.KEYDOWN or event.type == pygame.KEYUP:
            pressed = event.type == pygame.KEYDOWN

            if pressed and event.key == pygame.K_l and not self.selecting_game:
                self.load_game()
                return

            # CHIP-8 Controls
            key = KEY_LOOKUP.get(event.key, None)
            if key is not None:
                self.machine.keypress(key, pressed)

    def run_frame(self) -> None:
        """
        Advance the machine by one frame: one timer tick and the frame's share of instructions.
        A fault stops the game until another one is loaded.
        """
        if not self.game_loaded:
            return

        if self.machine.tick_timers() and self.sound_player is not None:
            self.sound_player.play(maxtime=TONE_MILLISECONDS)

        try:
            for _ in range(self.pacer.steps_for_frame()):
                self.machine.step()
        except MachineError as error:
            self.game_loaded = False
            logger.error(f"Stopping the game after a fault: {error}")
            easygui.msgbox(f"The game stopped with an error: {error}\n\nPress the L key to load a game.", "Game Crashed")

    def surface_pixels(self) -> np.ndarray:
        """
        The machine's display as palette indices, in the (width, height) layout pygame surfaces use.
        """
        return self.machine.display_snapshot().astype(np.ubyte)

    def draw_to_display(self) -> None:
        """
        Update the display.
        """
        pygame.surfarray.blit_array(self.inter_screen, self.surface_pixels())
        pygame.transform.scale(self.inter_screen, (SCALED_SCREEN_WIDTH, SCALED_SCREEN_HEIGHT), self.screen)
        pygame.display.flip()

    def event_loop(self, path: Optional[Path] = None) -> None:
        """
        Loop which handles all events, runs the machine and redraws the screen, starting with a game load.
        :param path: The game to start with, or None to pick one.
        """
        self.open_window()
        self.load_game(path)

        clock = pygame.time.Clock()
        while self.running:
            for event in pygame.event.get():
                self.handle_event(event)

            self.run_frame()
            self.draw_to_display()
            clock.tick(FRAMES_PER_SECOND)

        pygame.quit()


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a CHIP-8 game in a window.")
    parser.add_argument("game", nargs="?", type=Path, help="Game to load; a file picker opens if omitted")
    parser.add_argument("--speed", type=int, default=INSTRUCTIONS_PER_SECOND, help="Instructions executed per second")
    parser.add_argument("--debug", action="store_true", help="Log every executed instruction")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    arguments = parse_arguments(argv)

    logging.basicConfig(level=logging.DEBUG, format="[%(levelname)s]:  %(message)s", stream=sys.stdout)
    if not arguments.debug and "pydevd" not in sys.modules:
        logging.getLogger("chipcore").setLevel(logging.INFO)

    frontend = Frontend(Machine(), arguments.speed)
    frontend.event_loop(arguments.game)


if __name__ == "__main__":
    main()
