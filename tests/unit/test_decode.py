"""Instruction decoding and disassembly."""

from __future__ import annotations

import pytest

from chip8emu.cpu.cpu import Opcode, decode
from chip8emu.errors import InvalidOpcode


@pytest.mark.parametrize(
    ("word", "op"),
    [
        (0x00E0, Opcode.CLS),
        (0x00EE, Opcode.RET),
        (0x0123, Opcode.SYS),
        (0x1ABC, Opcode.JP),
        (0x2ABC, Opcode.CALL),
        (0x3A12, Opcode.SE_BYTE),
        (0x4A12, Opcode.SNE_BYTE),
        (0x5AB0, Opcode.SE_REG),
        (0x6A12, Opcode.LD_BYTE),
        (0x7A12, Opcode.ADD_BYTE),
        (0x8AB0, Opcode.LD_REG),
        (0x8AB1, Opcode.OR),
        (0x8AB2, Opcode.AND),
        (0x8AB3, Opcode.XOR),
        (0x8AB4, Opcode.ADD_REG),
        (0x8AB5, Opcode.SUB),
        (0x8AB6, Opcode.SHR),
        (0x8AB7, Opcode.SUBN),
        (0x8ABE, Opcode.SHL),
        (0x9AB0, Opcode.SNE_REG),
        (0xA123, Opcode.LD_I),
        (0xB123, Opcode.JP_V0),
        (0xCA0F, Opcode.RND),
        (0xDAB5, Opcode.DRW),
        (0xEA9E, Opcode.SKP),
        (0xEAA1, Opcode.SKNP),
        (0xFA07, Opcode.LD_VX_DT),
        (0xFA0A, Opcode.LD_VX_K),
        (0xFA15, Opcode.LD_DT_VX),
        (0xFA18, Opcode.LD_ST_VX),
        (0xFA1E, Opcode.ADD_I_VX),
        (0xFA29, Opcode.LD_F_VX),
        (0xFA33, Opcode.LD_B_VX),
        (0xFA55, Opcode.LD_MEM_VX),
        (0xFA65, Opcode.LD_VX_MEM),
    ],
)
def test_decode_covers_every_instruction_shape(word: int, op: Opcode) -> None:
    assert decode(word).op is op


def test_all_35_shapes_are_decodable() -> None:
    assert len(Opcode) == 35


def test_operand_fields() -> None:
    ins = decode(0xD7A3)

    assert ins.x == 0x7
    assert ins.y == 0xA
    assert ins.n == 0x3
    assert ins.kk == 0xA3
    assert ins.nnn == 0x7A3


@pytest.mark.parametrize(
    "word",
    [0x0000, 0x5AB1, 0x8AB8, 0x8ABF, 0x9AB1, 0xEA00, 0xEA9F, 0xF000, 0xFAFF, 0xFA56],
)
def test_invalid_words_raise(word: int) -> None:
    with pytest.raises(InvalidOpcode) as info:
        decode(word, pc=0x2F0)

    assert info.value.word == word
    assert info.value.pc == 0x2F0
    assert f"{word:04X}" in str(info.value)


@pytest.mark.parametrize(
    ("word", "text"),
    [
        (0x00E0, "CLS"),
        (0x1228, "JP 228"),
        (0x6C1F, "LD VC, 1F"),
        (0x8AB4, "ADD VA, VB"),
        (0xD01F, "DRW V0, V1, 15"),
        (0xF30A, "LD V3, K"),
        (0xF155, "LD [I], V1"),
    ],
)
def test_disassemble(word: int, text: str) -> None:
    assert decode(word).disassemble() == text
