"""CHIP-8 instruction decoder and execution engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Callable, Dict, List, Optional, Tuple

from chip8emu.errors import InvalidOpcode, OutOfBounds, StackOverflow, StackUnderflow
from chip8emu.log import TRACE
from chip8emu.memory import PROGRAM_START, font_address

logger = logging.getLogger(__name__)

REGISTER_COUNT = 16
STACK_DEPTH = 16
FLAG = 0xF


class Opcode(Enum):
    """The 35 instruction shapes, valued by their nibble pattern."""

    CLS = "00E0"
    RET = "00EE"
    SYS = "0nnn"
    JP = "1nnn"
    CALL = "2nnn"
    SE_BYTE = "3xkk"
    SNE_BYTE = "4xkk"
    SE_REG = "5xy0"
    LD_BYTE = "6xkk"
    ADD_BYTE = "7xkk"
    LD_REG = "8xy0"
    OR = "8xy1"
    AND = "8xy2"
    XOR = "8xy3"
    ADD_REG = "8xy4"
    SUB = "8xy5"
    SHR = "8xy6"
    SUBN = "8xy7"
    SHL = "8xyE"
    SNE_REG = "9xy0"
    LD_I = "Annn"
    JP_V0 = "Bnnn"
    RND = "Cxkk"
    DRW = "Dxyn"
    SKP = "Ex9E"
    SKNP = "ExA1"
    LD_VX_DT = "Fx07"
    LD_VX_K = "Fx0A"
    LD_DT_VX = "Fx15"
    LD_ST_VX = "Fx18"
    ADD_I_VX = "Fx1E"
    LD_F_VX = "Fx29"
    LD_B_VX = "Fx33"
    LD_MEM_VX = "Fx55"
    LD_VX_MEM = "Fx65"


_MNEMONICS: Dict[Opcode, str] = {
    Opcode.CLS: "CLS",
    Opcode.RET: "RET",
    Opcode.SYS: "SYS {nnn:03X}",
    Opcode.JP: "JP {nnn:03X}",
    Opcode.CALL: "CALL {nnn:03X}",
    Opcode.SE_BYTE: "SE V{x:X}, {kk:02X}",
    Opcode.SNE_BYTE: "SNE V{x:X}, {kk:02X}",
    Opcode.SE_REG: "SE V{x:X}, V{y:X}",
    Opcode.LD_BYTE: "LD V{x:X}, {kk:02X}",
    Opcode.ADD_BYTE: "ADD V{x:X}, {kk:02X}",
    Opcode.LD_REG: "LD V{x:X}, V{y:X}",
    Opcode.OR: "OR V{x:X}, V{y:X}",
    Opcode.AND: "AND V{x:X}, V{y:X}",
    Opcode.XOR: "XOR V{x:X}, V{y:X}",
    Opcode.ADD_REG: "ADD V{x:X}, V{y:X}",
    Opcode.SUB: "SUB V{x:X}, V{y:X}",
    Opcode.SHR: "SHR V{x:X}, V{y:X}",
    Opcode.SUBN: "SUBN V{x:X}, V{y:X}",
    Opcode.SHL: "SHL V{x:X}, V{y:X}",
    Opcode.SNE_REG: "SNE V{x:X}, V{y:X}",
    Opcode.LD_I: "LD I, {nnn:03X}",
    Opcode.JP_V0: "JP V0, {nnn:03X}",
    Opcode.RND: "RND V{x:X}, {kk:02X}",
    Opcode.DRW: "DRW V{x:X}, V{y:X}, {n}",
    Opcode.SKP: "SKP V{x:X}",
    Opcode.SKNP: "SKNP V{x:X}",
    Opcode.LD_VX_DT: "LD V{x:X}, DT",
    Opcode.LD_VX_K: "LD V{x:X}, K",
    Opcode.LD_DT_VX: "LD DT, V{x:X}",
    Opcode.LD_ST_VX: "LD ST, V{x:X}",
    Opcode.ADD_I_VX: "ADD I, V{x:X}",
    Opcode.LD_F_VX: "LD F, V{x:X}",
    Opcode.LD_B_VX: "LD B, V{x:X}",
    Opcode.LD_MEM_VX: "LD [I], V{x:X}",
    Opcode.LD_VX_MEM: "LD V{x:X}, [I]",
}


# Fixed-prefix groups selected by the high nibble, keyed by low nibble / low byte.
_ALU_OPS: Dict[int, Opcode] = {
    0x0: Opcode.LD_REG,
    0x1: Opcode.OR,
    0x2: Opcode.AND,
    0x3: Opcode.XOR,
    0x4: Opcode.ADD_REG,
    0x5: Opcode.SUB,
    0x6: Opcode.SHR,
    0x7: Opcode.SUBN,
    0xE: Opcode.SHL,
}

_KEY_OPS: Dict[int, Opcode] = {
    0x9E: Opcode.SKP,
    0xA1: Opcode.SKNP,
}

_MISC_OPS: Dict[int, Opcode] = {
    0x07: Opcode.LD_VX_DT,
    0x0A: Opcode.LD_VX_K,
    0x15: Opcode.LD_DT_VX,
    0x18: Opcode.LD_ST_VX,
    0x1E: Opcode.ADD_I_VX,
    0x29: Opcode.LD_F_VX,
    0x33: Opcode.LD_B_VX,
    0x55: Opcode.LD_MEM_VX,
    0x65: Opcode.LD_VX_MEM,
}

_SIMPLE_OPS: Dict[int, Opcode] = {
    0x1: Opcode.JP,
    0x2: Opcode.CALL,
    0x3: Opcode.SE_BYTE,
    0x4: Opcode.SNE_BYTE,
    0x6: Opcode.LD_BYTE,
    0x7: Opcode.ADD_BYTE,
    0xA: Opcode.LD_I,
    0xB: Opcode.JP_V0,
    0xC: Opcode.RND,
    0xD: Opcode.DRW,
}


@dataclass(frozen=True)
class Instruction:
    """A decoded instruction; operand fields are read straight from the word."""

    op: Opcode
    word: int

    @property
    def x(self) -> int:
        return (self.word >> 8) & 0x0F

    @property
    def y(self) -> int:
        return (self.word >> 4) & 0x0F

    @property
    def n(self) -> int:
        return self.word & 0x0F

    @property
    def kk(self) -> int:
        return self.word & 0xFF

    @property
    def nnn(self) -> int:
        return self.word & 0x0FFF

    def disassemble(self) -> str:
        return _MNEMONICS[self.op].format(x=self.x, y=self.y, n=self.n, kk=self.kk, nnn=self.nnn)


def decode(word: int, pc: int = PROGRAM_START) -> Instruction:
    """Map a 16-bit instruction word onto one of the 35 opcode shapes.

    Raises :class:`InvalidOpcode` for words outside the instruction set. The
    all-zero word is rejected rather than treated as ``SYS 000`` so a PC that
    runs into cleared memory halts instead of sliding forward.
    """

    word &= 0xFFFF
    high = word >> 12
    op: Optional[Opcode] = None
    if high == 0x0:
        if word == 0x00E0:
            op = Opcode.CLS
        elif word == 0x00EE:
            op = Opcode.RET
        elif word != 0x0000:
            op = Opcode.SYS
    elif high == 0x5:
        if word & 0x000F == 0:
            op = Opcode.SE_REG
    elif high == 0x8:
        op = _ALU_OPS.get(word & 0x000F)
    elif high == 0x9:
        if word & 0x000F == 0:
            op = Opcode.SNE_REG
    elif high == 0xE:
        op = _KEY_OPS.get(word & 0x00FF)
    elif high == 0xF:
        op = _MISC_OPS.get(word & 0x00FF)
    else:
        op = _SIMPLE_OPS[high]
    if op is None:
        raise InvalidOpcode(word, pc)
    return Instruction(op, word)


class StepResult(Enum):
    EXECUTED = "executed"
    WAITING_FOR_KEY = "waiting_for_key"


@dataclass
class CPURegisters:
    """Register file matching the CHIP-8 layout."""

    v: List[int] = field(default_factory=lambda: [0] * REGISTER_COUNT)
    index: int = 0
    program_counter: int = PROGRAM_START


@dataclass
class CPUStatus:
    waiting_for_key: bool = False
    last_opcode: int = 0
    instructions: int = 0


class CallStack:
    """Fixed-depth return address stack with an explicit pointer."""

    def __init__(self, depth: int = STACK_DEPTH) -> None:
        self.depth = depth
        self.entries: List[int] = [0] * depth
        self.pointer = 0

    def push(self, address: int, pc: int) -> None:
        if self.pointer >= self.depth:
            raise StackOverflow(self.pointer + 1, pc)
        self.entries[self.pointer] = address & 0xFFFF
        self.pointer += 1

    def pop(self, pc: int) -> int:
        if self.pointer <= 0:
            raise StackUnderflow(self.pointer, pc)
        self.pointer -= 1
        return self.entries[self.pointer]

    def active(self) -> Tuple[int, ...]:
        return tuple(self.entries[: self.pointer])

    def reset(self) -> None:
        self.entries = [0] * self.depth
        self.pointer = 0


@dataclass(frozen=True)
class RegisterSnapshot:
    v: Tuple[int, ...]
    index: int
    program_counter: int
    stack_pointer: int
    stack: Tuple[int, ...]
    delay_timer: int
    sound_timer: int

    def format(self) -> str:
        regs = " ".join(f"V{i:X}={value:02X}" for i, value in enumerate(self.v))
        stack = ",".join(f"{value:03X}" for value in self.stack)
        return (
            f"PC={self.program_counter:03X} I={self.index:03X} SP={self.stack_pointer} "
            f"DT={self.delay_timer:02X} ST={self.sound_timer:02X} {regs} stack=[{stack}]"
        )


class Chip8CPU:
    """Fetch-decode-execute core operating on a :class:`Chip8Hardware` bundle."""

    def __init__(self, hardware: object) -> None:
        self.hardware = hardware
        self.memory = hardware.memory
        self.registers = CPURegisters()
        self.stack = CallStack()
        self.status = CPUStatus()
        self._opcode_table: Dict[Opcode, Callable[[Instruction], Optional[StepResult]]] = {}
        self._init_opcode_table()

    def reset(self) -> None:
        self.registers = CPURegisters()
        self.stack.reset()
        self.status = CPUStatus()

    # ------------------------------------------------------------------
    # Fetch / decode / execute
    # ------------------------------------------------------------------
    def fetch(self) -> int:
        pc = self.registers.program_counter
        if pc < 0 or pc + 1 >= self.memory.length:
            raise OutOfBounds(pc, pc)
        return self.memory.load16(pc, pc)

    def step(self) -> StepResult:
        """Execute exactly one instruction."""

        pc = self.registers.program_counter
        word = self.fetch()
        instruction = decode(word, pc)
        if logger.isEnabledFor(TRACE):
            logger.log(TRACE, "%03X: %04X  %s", pc, word, instruction.disassemble())
        self.status.last_opcode = word
        result = self._opcode_table[instruction.op](instruction)
        if result is StepResult.WAITING_FOR_KEY:
            return result
        self.status.instructions += 1
        return StepResult.EXECUTED

    def snapshot(self) -> RegisterSnapshot:
        timers = self.hardware.timers
        return RegisterSnapshot(
            v=tuple(self.registers.v),
            index=self.registers.index,
            program_counter=self.registers.program_counter,
            stack_pointer=self.stack.pointer,
            stack=self.stack.active(),
            delay_timer=timers.delay,
            sound_timer=timers.sound,
        )

    def _advance(self, skip: bool = False) -> None:
        self.registers.program_counter = (self.registers.program_counter + (4 if skip else 2)) & 0xFFFF

    def _init_opcode_table(self) -> None:
        self._opcode_table = {
            Opcode.CLS: self._op_cls,
            Opcode.RET: self._op_ret,
            Opcode.SYS: self._op_sys,
            Opcode.JP: self._op_jp,
            Opcode.CALL: self._op_call,
            Opcode.SE_BYTE: self._op_se_byte,
            Opcode.SNE_BYTE: self._op_sne_byte,
            Opcode.SE_REG: self._op_se_reg,
            Opcode.LD_BYTE: self._op_ld_byte,
            Opcode.ADD_BYTE: self._op_add_byte,
            Opcode.LD_REG: self._op_ld_reg,
            Opcode.OR: self._op_or,
            Opcode.AND: self._op_and,
            Opcode.XOR: self._op_xor,
            Opcode.ADD_REG: self._op_add_reg,
            Opcode.SUB: self._op_sub,
            Opcode.SHR: self._op_shr,
            Opcode.SUBN: self._op_subn,
            Opcode.SHL: self._op_shl,
            Opcode.SNE_REG: self._op_sne_reg,
            Opcode.LD_I: self._op_ld_i,
            Opcode.JP_V0: self._op_jp_v0,
            Opcode.RND: self._op_rnd,
            Opcode.DRW: self._op_drw,
            Opcode.SKP: self._op_skp,
            Opcode.SKNP: self._op_sknp,
            Opcode.LD_VX_DT: self._op_ld_vx_dt,
            Opcode.LD_VX_K: self._op_ld_vx_k,
            Opcode.LD_DT_VX: self._op_ld_dt_vx,
            Opcode.LD_ST_VX: self._op_ld_st_vx,
            Opcode.ADD_I_VX: self._op_add_i_vx,
            Opcode.LD_F_VX: self._op_ld_f_vx,
            Opcode.LD_B_VX: self._op_ld_b_vx,
            Opcode.LD_MEM_VX: self._op_ld_mem_vx,
            Opcode.LD_VX_MEM: self._op_ld_vx_mem,
        }

    # ------------------------------------------------------------------
    # Flow control
    # ------------------------------------------------------------------
    def _op_cls(self, ins: Instruction) -> None:
        self.hardware.display.clear()
        self._advance()

    def _op_ret(self, ins: Instruction) -> None:
        self.registers.program_counter = self.stack.pop(self.registers.program_counter)

    def _op_sys(self, ins: Instruction) -> None:
        # Machine-code routines of the host CPU are not emulated.
        self._advance()

    def _op_jp(self, ins: Instruction) -> None:
        self.registers.program_counter = ins.nnn

    def _op_call(self, ins: Instruction) -> None:
        pc = self.registers.program_counter
        self.stack.push(pc + 2, pc)
        self.registers.program_counter = ins.nnn

    def _op_jp_v0(self, ins: Instruction) -> None:
        self.registers.program_counter = ins.nnn + self.registers.v[0]

    # ------------------------------------------------------------------
    # Conditional skips
    # ------------------------------------------------------------------
    def _op_se_byte(self, ins: Instruction) -> None:
        self._advance(self.registers.v[ins.x] == ins.kk)

    def _op_sne_byte(self, ins: Instruction) -> None:
        self._advance(self.registers.v[ins.x] != ins.kk)

    def _op_se_reg(self, ins: Instruction) -> None:
        v = self.registers.v
        self._advance(v[ins.x] == v[ins.y])

    def _op_sne_reg(self, ins: Instruction) -> None:
        v = self.registers.v
        self._advance(v[ins.x] != v[ins.y])

    def _op_skp(self, ins: Instruction) -> None:
        key = self.registers.v[ins.x] & 0x0F
        self._advance(self.hardware.keyboard.is_pressed(key))

    def _op_sknp(self, ins: Instruction) -> None:
        key = self.registers.v[ins.x] & 0x0F
        self._advance(not self.hardware.keyboard.is_pressed(key))

    # ------------------------------------------------------------------
    # Register loads and arithmetic
    # ------------------------------------------------------------------
    def _op_ld_byte(self, ins: Instruction) -> None:
        self.registers.v[ins.x] = ins.kk
        self._advance()

    def _op_add_byte(self, ins: Instruction) -> None:
        v = self.registers.v
        v[ins.x] = (v[ins.x] + ins.kk) & 0xFF
        self._advance()

    def _op_ld_reg(self, ins: Instruction) -> None:
        v = self.registers.v
        v[ins.x] = v[ins.y]
        self._advance()

    def _op_or(self, ins: Instruction) -> None:
        v = self.registers.v
        v[ins.x] |= v[ins.y]
        self._advance()

    def _op_and(self, ins: Instruction) -> None:
        v = self.registers.v
        v[ins.x] &= v[ins.y]
        self._advance()

    def _op_xor(self, ins: Instruction) -> None:
        v = self.registers.v
        v[ins.x] ^= v[ins.y]
        self._advance()

    # The flag is written after the result so VF as destination ends up holding the flag.
    def _op_add_reg(self, ins: Instruction) -> None:
        v = self.registers.v
        total = v[ins.x] + v[ins.y]
        v[ins.x] = total & 0xFF
        v[FLAG] = 1 if total > 0xFF else 0
        self._advance()

    def _op_sub(self, ins: Instruction) -> None:
        v = self.registers.v
        a, b = v[ins.x], v[ins.y]
        v[ins.x] = (a - b) & 0xFF
        v[FLAG] = 1 if a >= b else 0
        self._advance()

    def _op_subn(self, ins: Instruction) -> None:
        v = self.registers.v
        a, b = v[ins.y], v[ins.x]
        v[ins.x] = (a - b) & 0xFF
        v[FLAG] = 1 if a >= b else 0
        self._advance()

    def _op_shr(self, ins: Instruction) -> None:
        v = self.registers.v
        source = v[ins.y]
        v[ins.x] = source >> 1
        v[FLAG] = source & 0x01
        self._advance()

    def _op_shl(self, ins: Instruction) -> None:
        v = self.registers.v
        source = v[ins.y]
        v[ins.x] = (source << 1) & 0xFF
        v[FLAG] = (source >> 7) & 0x01
        self._advance()

    def _op_rnd(self, ins: Instruction) -> None:
        self.registers.v[ins.x] = self.hardware.rng.next_byte() & ins.kk
        self._advance()

    # ------------------------------------------------------------------
    # Index register, memory and display
    # ------------------------------------------------------------------
    def _op_ld_i(self, ins: Instruction) -> None:
        self.registers.index = ins.nnn
        self._advance()

    def _op_add_i_vx(self, ins: Instruction) -> None:
        self.registers.index = (self.registers.index + self.registers.v[ins.x]) & 0xFFFF
        self._advance()

    def _op_ld_f_vx(self, ins: Instruction) -> None:
        self.registers.index = font_address(self.registers.v[ins.x])
        self._advance()

    def _op_ld_b_vx(self, ins: Instruction) -> None:
        value = self.registers.v[ins.x]
        base = self.registers.index
        pc = self.registers.program_counter
        self.memory.store8(base, value // 100, pc)
        self.memory.store8(base + 1, (value // 10) % 10, pc)
        self.memory.store8(base + 2, value % 10, pc)
        self._advance()

    def _op_ld_mem_vx(self, ins: Instruction) -> None:
        base = self.registers.index
        pc = self.registers.program_counter
        for offset in range(ins.x + 1):
            self.memory.store8(base + offset, self.registers.v[offset], pc)
        self._advance()

    def _op_ld_vx_mem(self, ins: Instruction) -> None:
        base = self.registers.index
        pc = self.registers.program_counter
        for offset in range(ins.x + 1):
            self.registers.v[offset] = self.memory.load8(base + offset, pc)
        self._advance()

    def _op_drw(self, ins: Instruction) -> None:
        v = self.registers.v
        sprite = self.memory.read_block(self.registers.index, ins.n, self.registers.program_counter)
        collision = self.hardware.display.draw_sprite(v[ins.x], v[ins.y], sprite)
        v[FLAG] = 1 if collision else 0
        self._advance()

    # ------------------------------------------------------------------
    # Timers and keypad
    # ------------------------------------------------------------------
    def _op_ld_vx_dt(self, ins: Instruction) -> None:
        self.registers.v[ins.x] = self.hardware.timers.delay
        self._advance()

    def _op_ld_dt_vx(self, ins: Instruction) -> None:
        self.hardware.timers.set_delay(self.registers.v[ins.x])
        self._advance()

    def _op_ld_st_vx(self, ins: Instruction) -> None:
        self.hardware.timers.set_sound(self.registers.v[ins.x])
        self._advance()

    def _op_ld_vx_k(self, ins: Instruction) -> Optional[StepResult]:
        keyboard = self.hardware.keyboard
        if not self.status.waiting_for_key:
            # Drop any edge latched before the wait. A key already held must be
            # released and pressed again to satisfy it.
            keyboard.consume_press()
            self.status.waiting_for_key = True
            logger.debug("waiting for key into V%X at %03X", ins.x, self.registers.program_counter)
        key = keyboard.consume_press()
        if key is None:
            return StepResult.WAITING_FOR_KEY
        self.status.waiting_for_key = False
        self.registers.v[ins.x] = key
        self._advance()
        return None
