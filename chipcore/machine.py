import functools
import logging
import random

import numpy as np

from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

# Set up the logging
logger = logging.getLogger(__name__)

# Constants
UPPER_CHAR_MASK = 0xF000
ADDRESS_MASK = 0xFFF
BYTE_MASK = 255
WORD_MASK = 0xFFFF
MEMORY_SIZE = 4096
GAME_START_ADDRESS = 512
INTERPRETER_END_ADDRESS = 80
REGISTER_COUNT = 16
FLAG_REGISTER = 15
STACK_SIZE = 16
KEY_COUNT = 16
SCREEN_WIDTH = 64
SCREEN_HEIGHT = 32
SPRITE_WIDTH = 8
DIGIT_SPRITE_HEIGHT = 5

DIGIT_SPRITES = bytes.fromhex(
    "f0909090f0"  # 0
    "2060202070"  # 1
    "f010f080f0"  # 2
    "f010f010f0"  # 3
    "9090f01010"  # 4
    "f080f010f0"  # 5
    "f080f090f0"  # 6
    "f010204040"  # 7
    "f090f090f0"  # 8
    "f090f010f0"  # 9
    "f090f09090"  # A
    "e090e090e0"  # B
    "f0808080f0"  # C
    "e0909090e0"  # D
    "f080f080f0"  # E
    "f080f08080"  # F
)


class MachineError(Exception):
    """
    Base class of every fault raised while executing an instruction.
    """


class UnimplementedOpcodeError(MachineError):
    def __init__(self, opcode: int):
        super().__init__(f"Unimplemented / Invalid Opcode: {opcode:04x}.")
        self.opcode = opcode


class OutOfBoundsError(MachineError):
    """
    An address, address range or key index fell outside of the machine.
    """


class StackOverflowError(MachineError):
    pass


class StackUnderflowError(MachineError):
    pass


class Opcode(NamedTuple):
    """
    A fetched instruction word, split into the fields the instruction handlers read.
    """
    value: int
    first_char: int
    x: int
    y: int
    n: int
    nn: int
    nnn: int

    @classmethod
    def from_word(cls, word: int) -> "Opcode":
        """
        Split a 16-bit word into its nibbles and immediates.
        :param word: The big-endian instruction word.
        :return: The decomposed opcode.
        """
        return cls(
            value=word,
            first_char=(word & UPPER_CHAR_MASK) >> 12,
            x=(word >> 8) & 0xF,
            y=(word >> 4) & 0xF,
            n=word & 0xF,
            nn=word & BYTE_MASK,
            nnn=word & ADDRESS_MASK,
        )

    def hex(self) -> str:
        return f"{self.value:04x}"


# Families identified by the first nibble alone
OPCODE_TABLE: Dict[int, str] = {
    1: "opcode_goto",
    2: "opcode_call_subroutine",
    3: "opcode_if_equal",
    4: "opcode_if_not_equal",
    6: "opcode_set_register_value",
    7: "opcode_add_value",
    10: "opcode_set_index_register",
    11: "opcode_goto_addition",
    12: "opcode_random_bitwise_and",
    13: "opcode_draw_sprite",
}

# 0x0NNN, keyed by the full word
SYSTEM_TABLE: Dict[int, str] = {
    0x0000: "opcode_no_operation",
    0x00E0: "opcode_clear_screen",
    0x00EE: "opcode_return_from_subroutine",
}

# 0x8XYN, keyed by the last nibble
ARITHMETIC_TABLE: Dict[int, str] = {
    0: "opcode_set_register_value_other_register",
    1: "opcode_set_register_bitwise_or",
    2: "opcode_set_register_bitwise_and",
    3: "opcode_set_register_bitwise_xor",
    4: "opcode_add_other_register",
    5: "opcode_subtract_from_first_register",
    6: "opcode_bit_shift_right",
    7: "opcode_subtract_from_second_register",
    14: "opcode_bit_shift_left",
}

# 0xEXNN, keyed by the low byte
KEY_TABLE: Dict[int, str] = {
    0x9E: "opcode_if_key_pressed",
    0xA1: "opcode_if_key_not_pressed",
}

# 0xFXNN, keyed by the low byte
MISC_TABLE: Dict[int, str] = {
    0x07: "opcode_get_delay_timer",
    0x0A: "opcode_wait_for_key_press",
    0x15: "opcode_set_delay_timer",
    0x18: "opcode_set_sound_timer",
    0x1E: "opcode_index_register_addition",
    0x29: "opcode_set_index_register_to_hex_sprite_address",
    0x33: "opcode_binary_coded_decimal",
    0x55: "opcode_register_dump",
    0x65: "opcode_register_load",
}


def decode(opcode: Opcode) -> str:
    """
    Route the provided opcode to the name of the Machine method which executes it.
    :param opcode: The opcode to decode.
    :return: The name of the handler method.
    :raises UnimplementedOpcodeError: If no instruction matches the opcode.
    """
    first_char = opcode.first_char
    handler: Optional[str] = None

    if first_char == 0:
        handler = SYSTEM_TABLE.get(opcode.value)
    elif first_char == 5 and opcode.n == 0:
        handler = "opcode_if_register_equal"
    elif first_char == 8:
        handler = ARITHMETIC_TABLE.get(opcode.n)
    elif first_char == 9 and opcode.n == 0:
        handler = "opcode_if_register_not_equal"
    elif first_char == 14:
        handler = KEY_TABLE.get(opcode.nn)
    elif first_char == 15:
        handler = MISC_TABLE.get(opcode.nn)
    else:
        handler = OPCODE_TABLE.get(first_char)

    if handler is None:
        raise UnimplementedOpcodeError(opcode.value)
    return handler


class Machine:
    """
    The machine state and the semantics of every instruction.

    The host drives it: ``step`` at the instruction rate, ``tick_timers`` at 60 Hz,
    ``keypress`` on input and ``display_snapshot`` when rendering.
    """
    def __init__(self, random_byte: Optional[Callable[[], int]] = None):
        """
        Constructor.
        :param random_byte: Source of random bytes for the random opcode.  A private generator is used if not provided.
        """
        if random_byte is None:
            generator = random.Random()
            random_byte = functools.partial(generator.randint, 0, BYTE_MASK)
        self.random_byte = random_byte

        self.memory = bytearray(MEMORY_SIZE)
        self.registers = bytearray(REGISTER_COUNT)
        self.index_register = 0
        self.delay_timer = 0
        self.sound_timer = 0
        self.program_counter = GAME_START_ADDRESS
        self.stack: List[int] = [0] * STACK_SIZE
        self.stack_pointer = 0
        self.keys: List[bool] = [False] * KEY_COUNT
        self.pixels = np.zeros((SCREEN_WIDTH, SCREEN_HEIGHT), np.bool_)

        self.load_digit_sprites()

    def reset(self) -> None:
        """
        Reset the machine to its power-on state.
        """
        self.index_register = 0
        self.delay_timer = 0
        self.sound_timer = 0
        self.program_counter = GAME_START_ADDRESS
        self.stack: List[int] = [0] * STACK_SIZE
        self.stack_pointer = 0
        self.keys: List[bool] = [False] * KEY_COUNT
        self.pixels.fill(False)

        self.memory = bytearray(MEMORY_SIZE)
        self.registers = bytearray(REGISTER_COUNT)

        self.load_digit_sprites()
        logger.debug("Machine reset.")

    def load(self, program: bytes) -> None:
        """
        Copy a program image into memory at the game start address.
        :param program: The raw program bytes.
        """
        end_address = GAME_START_ADDRESS + len(program)
        if end_address > MEMORY_SIZE:
            raise OutOfBoundsError(f"Program of {len(program)} bytes does not fit in memory; at most {MEMORY_SIZE - GAME_START_ADDRESS} bytes are available.")

        self.memory[GAME_START_ADDRESS:end_address] = program
        logger.debug(f"Loaded a program of {len(program)} bytes at {hex(GAME_START_ADDRESS)}.")

    def load_digit_sprites(self) -> None:
        """
        Load the sprites for the hexadecimal digits 0-f into memory.
        """
        self.memory[0:INTERPRETER_END_ADDRESS] = DIGIT_SPRITES

    def keypress(self, index: int, pressed: bool) -> None:
        """
        Set the state of one key of the keypad.
        :param index: The key, 0-15.
        :param pressed: True if the key is down, False otherwise.
        """
        if not 0 <= index < KEY_COUNT:
            raise ValueError(f"Key index must be between 0 and {KEY_COUNT - 1}, got {index}.")

        self.keys[index] = bool(pressed)
        logger.debug(f"Key State Changed.  Key: {index}, Pressed: {pressed}.")

    def display_snapshot(self) -> np.ndarray:
        """
        A copy of the display, indexed by [x, y].
        """
        return self.pixels.copy()

    def tick_timers(self) -> bool:
        """
        Decrement the delay and sound timers if they are above 0.
        :return: True if the tone should sound for this tick, which is the tick taking the sound timer from 1 to 0.
        """
        if self.delay_timer > 0:
            self.delay_timer -= 1

        tone = False
        if self.sound_timer > 0:
            tone = self.sound_timer == 1
            self.sound_timer -= 1
        return tone

    # region Helpers
    def check_memory_range(self, address: int, length: int) -> None:
        """
        Ensure that ``length`` bytes starting at ``address`` all lie within memory.
        :param address: The first address of the range.
        :param length: The number of bytes in the range.
        """
        if address < 0 or address + length > MEMORY_SIZE:
            raise OutOfBoundsError(f"Memory access of {length} bytes at {hex(address)} is outside of memory.")

    def check_key(self, key: int) -> None:
        if key >= KEY_COUNT:
            raise OutOfBoundsError(f"Key {key} does not exist on the keypad.")

    def skip_next_instruction(self) -> None:
        self.program_counter += 2
        logger.debug("Instruction skipped.")

    @staticmethod
    def bounded_subtract(minuend: int, subtrahend: int) -> Tuple[int, int]:
        """
        Subtract the subtrahend from the minuend, bounded by the confines of a byte.
        :param minuend: The integer from which to subtract.
        :param subtrahend: The integer to subtract.
        :return: The result of the subtraction and the not borrow (1 if there was no borrow, 0 otherwise).
        """
        difference_of_registers = minuend - subtrahend
        result = difference_of_registers % 256
        not_borrow = 1 if difference_of_registers >= 0 else 0
        return result, not_borrow
    # endregion

    # region Opcodes
    def fetch_opcode(self) -> Opcode:
        """
        Read the instruction at the program counter and advance the program counter past it.
        :return: The fetched opcode.
        """
        self.check_memory_range(self.program_counter, 2)
        word = (self.memory[self.program_counter] << 8) | self.memory[self.program_counter + 1]
        self.program_counter += 2
        return Opcode.from_word(word)

    def step(self) -> None:
        """
        Fetch, decode and execute a single instruction.  On a fault the program counter is restored and the fault re-raised.
        """
        program_counter = self.program_counter
        try:
            opcode = self.fetch_opcode()
            handler = getattr(self, decode(opcode))
            handler(opcode)
        except MachineError as error:
            self.program_counter = program_counter
            logger.error(f"Fault at {hex(program_counter)}: {error}")
            raise

    def opcode_no_operation(self, opcode: Opcode) -> None:
        logger.debug(f"Execute Opcode {opcode.hex()}: No operation.")

    def opcode_clear_screen(self, opcode: Opcode) -> None:
        """
        Clear the screen.
        :param opcode: The opcode to execute.
        """
        self.pixels.fill(False)
        logger.debug(f"Execute Opcode {opcode.hex()}: Clearing the screen.")

    def opcode_return_from_subroutine(self, opcode: Opcode) -> None:
        """
        Return from the current subroutine.
        :param opcode: The opcode to execute.
        """
        if self.stack_pointer == 0:
            raise StackUnderflowError("Tried to return from a subroutine when the stack is empty.")

        self.stack_pointer -= 1
        self.program_counter = self.stack[self.stack_pointer]
        logger.debug(f"Execute Opcode {opcode.hex()}: Return from subroutine, continue at {hex(self.program_counter)}.")

    def opcode_goto(self, opcode: Opcode) -> None:
        """
        Jump to the provided address.
        :param opcode: The opcode to execute.
        """
        self.program_counter = opcode.nnn
        logger.debug(f"Execute Opcode {opcode.hex()}: Jump to address {hex(opcode.nnn)}.")

    def opcode_call_subroutine(self, opcode: Opcode) -> None:
        """
        Call the subroutine at the given address.
        :param opcode: The opcode to execute.
        """
        if self.stack_pointer == STACK_SIZE:
            raise StackOverflowError(f"Tried to call a subroutine with {STACK_SIZE} calls already pending.")

        self.stack[self.stack_pointer] = self.program_counter
        self.stack_pointer += 1
        self.program_counter = opcode.nnn
        logger.debug(f"Execute Opcode {opcode.hex()}: Call subroutine at address {hex(opcode.nnn)}.")

    def opcode_if_equal(self, opcode: Opcode) -> None:
        """
        Skip the next instruction if the value of the provided register is equal to the provided value.
        :param opcode: The opcode to execute.
        """
        register_value = self.registers[opcode.x]
        logger.debug(f"Execute Opcode {opcode.hex()}: Skip next instruction if register {opcode.x}'s value ({register_value}) is {opcode.nn}.")
        if register_value == opcode.nn:
            self.skip_next_instruction()

    def opcode_if_not_equal(self, opcode: Opcode) -> None:
        """
        Skip the next instruction if the value of the provided register is not equal to the provided value.
        :param opcode: The opcode to execute.
        """
        register_value = self.registers[opcode.x]
        logger.debug(f"Execute Opcode {opcode.hex()}: Skip next instruction if register {opcode.x}'s value ({register_value}) is not {opcode.nn}.")
        if register_value != opcode.nn:
            self.skip_next_instruction()

    def opcode_if_register_equal(self, opcode: Opcode) -> None:
        """
        Skip the next instruction if the values of the two provided registers are equal.
        :param opcode: The opcode to execute.
        """
        first_register_value = self.registers[opcode.x]
        second_register_value = self.registers[opcode.y]
        logger.debug(f"Execute Opcode {opcode.hex()}: Skip next instruction if register {opcode.x}'s value ({first_register_value}) is equal to register {opcode.y}'s value ({second_register_value}).")
        if first_register_value == second_register_value:
            self.skip_next_instruction()

    def opcode_set_register_value(self, opcode: Opcode) -> None:
        """
        Set the value of the provided register to the provided value.
        :param opcode: The opcode to execute.
        """
        self.registers[opcode.x] = opcode.nn
        logger.debug(f"Execute Opcode {opcode.hex()}: Set the value of register {opcode.x} to {opcode.nn}.")

    def opcode_add_value(self, opcode: Opcode) -> None:
        """
        Adds the provided value to the value of the provided register.  The carry flag (register 15) is not set.
        :param opcode: The opcode to execute.
        """
        self.registers[opcode.x] = (self.registers[opcode.x] + opcode.nn) % 256
        logger.debug(f"Execute Opcode {opcode.hex()}: Add {opcode.nn} to the value of register {opcode.x}.")

    def opcode_set_register_value_other_register(self, opcode: Opcode) -> None:
        """
        Set the value of the first provided register to the value of the second provided register.
        :param opcode: The opcode to execute.
        """
        second_register_value = self.registers[opcode.y]
        self.registers[opcode.x] = second_register_value
        logger.debug(f"Execute Opcode {opcode.hex()}: Set the value of register {opcode.x} to the value of register {opcode.y} ({second_register_value}).")

    def opcode_set_register_bitwise_or(self, opcode: Opcode) -> None:
        """
        Sets the value of the first provided register to the bitwise or of itself and the value of the second provided register.
        :param opcode: The opcode to execute.
        """
        result = self.registers[opcode.x] | self.registers[opcode.y]
        self.registers[opcode.x] = result
        logger.debug(f"Execute Opcode {opcode.hex()}: Set the value of register {opcode.x} to the bitwise or of itself and register {opcode.y} ({result}).")

    def opcode_set_register_bitwise_and(self, opcode: Opcode) -> None:
        """
        Sets the value of the first provided register to the bitwise and of itself and the value of the second provided register.
        :param opcode: The opcode to execute.
        """
        result = self.registers[opcode.x] & self.registers[opcode.y]
        self.registers[opcode.x] = result
        logger.debug(f"Execute Opcode {opcode.hex()}: Set the value of register {opcode.x} to the bitwise and of itself and register {opcode.y} ({result}).")

    def opcode_set_register_bitwise_xor(self, opcode: Opcode) -> None:
        """
        Sets the value of the first provided register to the bitwise xor of itself and the value of the second provided register.
        :param opcode: The opcode to execute.
        """
        result = self.registers[opcode.x] ^ self.registers[opcode.y]
        self.registers[opcode.x] = result
        logger.debug(f"Execute Opcode {opcode.hex()}: Set the value of register {opcode.x} to the bitwise xor of itself and register {opcode.y} ({result}).")

    def opcode_add_other_register(self, opcode: Opcode) -> None:
        """
        Sets the value of the first provided register to the sum of itself and the value of the second provided register.  The carry flag (register 15) is set.
        :param opcode: The opcode to execute.
        """
        first_register_value = self.registers[opcode.x]
        second_register_value = self.registers[opcode.y]
        sum_of_registers = first_register_value + second_register_value
        result = sum_of_registers % 256
        carry = 1 if sum_of_registers >= 256 else 0
        self.registers[opcode.x] = result
        self.registers[FLAG_REGISTER] = carry
        logger.debug(f"Execute Opcode {opcode.hex()}: Set the value of register {opcode.x} to the sum of itself and the value of register {opcode.y} ({first_register_value} + {second_register_value} = {result}, carry = {carry}).")

    def opcode_subtract_from_first_register(self, opcode: Opcode) -> None:
        """
        Sets the value of the first provided register to the difference of itself and the value of the second provided register.  The not borrow flag (register 15) is set.
        :param opcode: The opcode to execute.
        """
        first_register_value = self.registers[opcode.x]
        second_register_value = self.registers[opcode.y]
        result, not_borrow = self.bounded_subtract(first_register_value, second_register_value)
        self.registers[opcode.x] = result
        self.registers[FLAG_REGISTER] = not_borrow
        logger.debug(f"Execute Opcode {opcode.hex()}: Set the value of register {opcode.x} to the difference of itself and the value of register {opcode.y} ({first_register_value} - {second_register_value} = {result}, not borrow = {not_borrow}).")

    def opcode_bit_shift_right(self, opcode: Opcode) -> None:
        """
        Shift the value of the first provided register to the right by 1.  Set register 15 to the value of the least significant bit before the operation.
        :param opcode: The opcode to execute.
        """
        first_register_value = self.registers[opcode.x]
        bit_shift = first_register_value >> 1
        least_significant_bit = first_register_value & 1
        self.registers[opcode.x] = bit_shift
        self.registers[FLAG_REGISTER] = least_significant_bit
        logger.debug(f"Execute Opcode {opcode.hex()}: Shift the value of register {opcode.x} to the right by 1 ({first_register_value} >> 1 = {bit_shift}, previous least significant bit = {least_significant_bit}).")

    def opcode_subtract_from_second_register(self, opcode: Opcode) -> None:
        """
        Sets the value of the first provided register to the difference of the value of the second provided register and itself.  The not borrow flag (register 15) is set.
        :param opcode: The opcode to execute.
        """
        first_register_value = self.registers[opcode.x]
        second_register_value = self.registers[opcode.y]
        result, not_borrow = self.bounded_subtract(second_register_value, first_register_value)
        self.registers[opcode.x] = result
        self.registers[FLAG_REGISTER] = not_borrow
        logger.debug(f"Execute Opcode {opcode.hex()}: Set the value of register {opcode.x} to the difference of the value of register {opcode.y} and itself ({second_register_value} - {first_register_value} = {result}, not borrow = {not_borrow}).")

    def opcode_bit_shift_left(self, opcode: Opcode) -> None:
        """
        Shift the value of the first provided register to the left by 1.  Set register 15 to the value of the most significant bit before the operation.
        :param opcode: The opcode to execute.
        """
        first_register_value = self.registers[opcode.x]
        bit_shift = (first_register_value << 1) & BYTE_MASK
        most_significant_bit = first_register_value >> 7
        self.registers[opcode.x] = bit_shift
        self.registers[FLAG_REGISTER] = most_significant_bit
        logger.debug(f"Execute Opcode {opcode.hex()}: Shift the value of register {opcode.x} to the left by 1 ({first_register_value} << 1 = {bit_shift}, previous most significant bit = {most_significant_bit}).")

    def opcode_if_register_not_equal(self, opcode: Opcode) -> None:
        """
        Skip the next instruction if the values of the two provided registers are not equal.
        :param opcode: The opcode to execute.
        """
        first_register_value = self.registers[opcode.x]
        second_register_value = self.registers[opcode.y]
        logger.debug(f"Execute Opcode {opcode.hex()}: Skip next instruction if register {opcode.x}'s value ({first_register_value}) is not equal to register {opcode.y}'s value ({second_register_value}).")
        if first_register_value != second_register_value:
            self.skip_next_instruction()

    def opcode_set_index_register(self, opcode: Opcode) -> None:
        """
        Sets the value of the index register to the provided address.
        :param opcode: The opcode to execute.
        """
        self.index_register = opcode.nnn
        logger.debug(f"Execute Opcode {opcode.hex()}: Set the index register to {hex(opcode.nnn)}.")

    def opcode_goto_addition(self, opcode: Opcode) -> None:
        """
        Jump to the provided address plus the value of register 0.  The address is masked before the addition and the sum is not.
        :param opcode: The opcode to execute.
        """
        register_value = self.registers[0]
        self.program_counter = register_value + opcode.nnn
        logger.debug(f"Execute Opcode {opcode.hex()}: Jump to the provided address plus the value of register 0 ({hex(opcode.nnn)} + {hex(register_value)} = {hex(self.program_counter)}).")

    def opcode_random_bitwise_and(self, opcode: Opcode) -> None:
        """
        Set the value of the provided register to the bitwise and of the provided value and a random number [0, 255].
        :param opcode: The opcode to execute.
        """
        random_value = self.random_byte() & BYTE_MASK
        result = opcode.nn & random_value
        self.registers[opcode.x] = result
        logger.debug(f"Execute Opcode {opcode.hex()}: Set the value of register {opcode.x} to the bitwise and of the provided value and a random number [0, 255] ({opcode.nn} & {random_value} = {result}).")

    def opcode_draw_sprite(self, opcode: Opcode) -> None:
        """
        Draws the sprite with the provided height found at the address in the index register to the x and y coordinates held by the provided registers.
        Coordinates wrap around the edges of the screen.  The collision flag (register 15) is set to 1 if any pixel was unset, 0 otherwise.
        :param opcode: The opcode to execute.
        """
        height = opcode.n
        self.check_memory_range(self.index_register, height)

        register_x_value = self.registers[opcode.x]
        register_y_value = self.registers[opcode.y]
        pixel_unset = 0
        for row in range(height):
            byte = self.memory[self.index_register + row]
            y_coordinate = (register_y_value + row) % SCREEN_HEIGHT
            for column in range(SPRITE_WIDTH):
                if not (byte >> (SPRITE_WIDTH - 1 - column)) & 1:
                    continue
                x_coordinate = (register_x_value + column) % SCREEN_WIDTH
                if self.pixels[x_coordinate, y_coordinate]:
                    pixel_unset = 1
                self.pixels[x_coordinate, y_coordinate] ^= True
        self.registers[FLAG_REGISTER] = pixel_unset
        logger.debug(f"Execute Opcode {opcode.hex()}: Drawing the sprite with a height of {height} found at address {hex(self.index_register)} at ({register_x_value}, {register_y_value}), collision = {pixel_unset}.")

    def opcode_if_key_pressed(self, opcode: Opcode) -> None:
        """
        Skip the next instruction if the key represented by the value of the provided register is pressed.
        :param opcode: The opcode to execute.
        """
        key = self.registers[opcode.x]
        self.check_key(key)
        pressed = self.keys[key]
        logger.debug(f"Execute Opcode {opcode.hex()}: Skip next instruction if the key represented by the value of register {opcode.x} ({key}) is pressed ({pressed}).")
        if pressed:
            self.skip_next_instruction()

    def opcode_if_key_not_pressed(self, opcode: Opcode) -> None:
        """
        Skip the next instruction if the key represented by the value of the provided register is not pressed.
        :param opcode: The opcode to execute.
        """
        key = self.registers[opcode.x]
        self.check_key(key)
        pressed = self.keys[key]
        logger.debug(f"Execute Opcode {opcode.hex()}: Skip next instruction if the key represented by the value of register {opcode.x} ({key}) is not pressed ({pressed}).")
        if not pressed:
            self.skip_next_instruction()

    def opcode_get_delay_timer(self, opcode: Opcode) -> None:
        """
        Sets the value of the provided register to the value of the delay timer.
        :param opcode: The opcode to execute.
        """
        self.registers[opcode.x] = self.delay_timer
        logger.debug(f"Execute Opcode {opcode.hex()}: Set the value of register {opcode.x} to the value of the delay timer ({self.delay_timer}).")

    def opcode_wait_for_key_press(self, opcode: Opcode) -> None:
        """
        Block until a key is down, storing the lowest pressed key in the provided register.
        While no key is down the program counter is moved back so that this instruction runs again on the next step.
        :param opcode: The opcode to execute.
        """
        for key, pressed in enumerate(self.keys):
            if pressed:
                self.registers[opcode.x] = key
                logger.debug(f"Execute Opcode {opcode.hex()}: Key {key} is pressed, storing it in register {opcode.x}.")
                return

        self.program_counter -= 2
        logger.debug(f"Execute Opcode {opcode.hex()}: No key pressed, waiting.")

    def opcode_set_delay_timer(self, opcode: Opcode) -> None:
        """
        Sets the delay timer to the value of the provided register.
        :param opcode: The opcode to execute.
        """
        self.delay_timer = self.registers[opcode.x]
        logger.debug(f"Execute Opcode {opcode.hex()}: Set the value of the delay timer to the value of register {opcode.x} ({self.delay_timer}).")

    def opcode_set_sound_timer(self, opcode: Opcode) -> None:
        """
        Sets the sound timer to the value of the provided register.
        :param opcode: The opcode to execute.
        """
        self.sound_timer = self.registers[opcode.x]
        logger.debug(f"Execute Opcode {opcode.hex()}: Set the value of the sound timer to the value of register {opcode.x} ({self.sound_timer}).")

    def opcode_index_register_addition(self, opcode: Opcode) -> None:
        """
        Add the value of the provided register to the index register, wrapping at 16 bits.  Register 15 is left untouched.
        :param opcode: The opcode to execute.
        """
        register_value = self.registers[opcode.x]
        index_register_value = self.index_register
        self.index_register = (index_register_value + register_value) & WORD_MASK
        logger.debug(f"Execute Opcode {opcode.hex()}: Add the value of register {opcode.x} to the index register ({index_register_value} + {register_value} = {self.index_register}).")

    def opcode_set_index_register_to_hex_sprite_address(self, opcode: Opcode) -> None:
        """
        Sets the index register to the address of the hexadecimal sprite represented by the value in the provided register.
        :param opcode: The opcode to execute.
        """
        register_value = self.registers[opcode.x]
        self.index_register = register_value * DIGIT_SPRITE_HEIGHT
        logger.debug(f"Execute Opcode {opcode.hex()}: Set the index register to the address ({self.index_register}) of the hexadecimal sprite represented by the value of register {opcode.x} ({register_value}).")

    def opcode_binary_coded_decimal(self, opcode: Opcode) -> None:
        """
        Store the Binary Coded Decimal representation of the value of the provided register in memory, starting at the index register.
        Hundreds digit stored in memory at the index register.
        Tens digit stored in memory at the index register + 1.
        Units digit stored in memory at the index register + 2.
        :param opcode: The opcode to execute.
        """
        self.check_memory_range(self.index_register, 3)

        register_value = self.registers[opcode.x]
        hundreds = register_value // 100 % 10
        tens = register_value // 10 % 10
        units = register_value % 10
        self.memory[self.index_register] = hundreds
        self.memory[self.index_register + 1] = tens
        self.memory[self.index_register + 2] = units
        logger.debug(f"Execute Opcode {opcode.hex()}: Store the Binary Coded Decimal representation of the value of register {opcode.x} ({register_value}) at {hex(self.index_register)} ({hundreds}, {tens}, {units}).")

    def opcode_register_dump(self, opcode: Opcode) -> None:
        """
        Store the values of all registers from register 0 to the provided register in memory, starting at the index register.
        :param opcode: The opcode to execute.
        """
        last_register = opcode.x
        self.check_memory_range(self.index_register, last_register + 1)

        logger.debug(f"Execute Opcode {opcode.hex()}: Dumping the values of all registers from register 0 to register {last_register} into memory, starting at {hex(self.index_register)}.")
        for register in range(last_register + 1):
            self.memory[self.index_register + register] = self.registers[register]

    def opcode_register_load(self, opcode: Opcode) -> None:
        """
        Load the values of all registers from register 0 to the provided register from memory, starting at the index register.
        :param opcode: The opcode to execute.
        """
        last_register = opcode.x
        self.check_memory_range(self.index_register, last_register + 1)

        logger.debug(f"Execute Opcode {opcode.hex()}: Loading the values of all registers from register 0 to register {last_register} from memory, starting at {hex(self.index_register)}.")
        for register in range(last_register + 1):
            self.registers[register] = self.memory[self.index_register + register]
    # endregion
