from unittest.mock import AsyncMock, Mock

import pytest

from hyprfinity.autotune import (
    HardwareInfo,
    detect_auto_tune_profile,
    detect_gpu_model,
    detect_gpu_models,
    detect_gpu_vram_gib,
    detect_total_memory_gib,
    gpu_model_score,
    gpu_scale_adjustment,
    recommend_render_scale,
)

LSPCI = b"""00:00.0 Host bridge [0600]: Intel Corporation Xeon E3-1200 v6/7th Gen Core Processor Host Bridge [8086:5904] (rev 02)
00:02.0 VGA compatible controller [0300]: Intel Corporation UHD Graphics 620 [8086:5917] (rev 07)
01:00.0 3D controller [0302]: NVIDIA Corporation GP108M [GeForce MX150] [10de:1d10] (rev a1)
"""


@pytest.mark.parametrize(
    ("span_pixels", "hardware", "expected"),
    [
        (None, HardwareInfo(cpu_threads=8, mem_gib=16.0), 1.0),
        (1920 * 1080, HardwareInfo(cpu_threads=8), 1.0),
        (4480 * 1440, HardwareInfo(cpu_threads=16, mem_gib=32.0), 0.95),
        (4480 * 1440, HardwareInfo(cpu_threads=12, mem_gib=24.0), 0.9),
        (5760 * 1080, HardwareInfo(cpu_threads=6, mem_gib=16.0), 0.75),
        (7680 * 1440, HardwareInfo(cpu_threads=8, mem_gib=16.0), 0.75),
        (7680 * 1600, HardwareInfo(cpu_threads=8, mem_gib=16.0), 0.67),
        (7680 * 2160, HardwareInfo(cpu_threads=4, gpu_model="Radeon RX 580", gpu_vram_gib=8.0), 0.5),
        (1920 * 1080, HardwareInfo(cpu_threads=16, mem_gib=64.0, gpu_model="GeForce RTX 4090", gpu_vram_gib=24.0), 1.0),
    ],
)
def test_recommend_render_scale(span_pixels, hardware, expected):
    assert recommend_render_scale(span_pixels, hardware).render_scale == expected


def test_recommendation_reason():
    profile = recommend_render_scale(None, HardwareInfo(cpu_threads=8))
    assert profile.reason == (
        "auto-tuned using CPU threads=8, RAM=unknown GiB, span_pixels=unknown, GPU='unknown', "
        "GPU_VRAM=unknown GiB, gpu_adjustment=+0.00 (no strong GPU adjustment)"
    )


def test_gpu_adjustment():
    assert gpu_scale_adjustment(None, None, None) == (0.0, "no strong GPU adjustment")

    delta, reason = gpu_scale_adjustment("NVIDIA GeForce RTX 4070", 12.0, 1920 * 1080)
    assert delta == pytest.approx(0.12)
    assert reason == "VRAM 12.0GiB (good), newer high-end GPU tier"

    delta, reason = gpu_scale_adjustment("Intel UHD Graphics 620", None, 12_000_000)
    assert delta == pytest.approx(-0.17)
    assert reason == "integrated Intel graphics, large multi-monitor span"


def test_gpu_adjustment_is_bounded():
    assert gpu_scale_adjustment("rx 7900", 24.0, None)[0] == pytest.approx(0.12)
    assert gpu_scale_adjustment("Radeon RX 470", 2.0, 20_000_000)[0] == pytest.approx(-0.35)


def test_gpu_model_score():
    assert gpu_model_score("NVIDIA GeForce RTX 3080") > gpu_model_score("Intel UHD Graphics 630")
    assert gpu_model_score("Intel Arc A770") > gpu_model_score("Intel Iris Xe")
    assert gpu_model_score("AMD Radeon RX 580") > gpu_model_score("AMD Radeon RX 570")


@pytest.mark.asyncio
async def test_total_memory(tmp_path):
    meminfo = tmp_path / "meminfo"
    meminfo.write_text("MemFree:  1024 kB\nMemTotal:       16777216 kB\n")
    assert await detect_total_memory_gib(meminfo) == 16.0
    assert await detect_total_memory_gib(tmp_path / "missing") is None
    meminfo.write_text("MemTotal: lots\n")
    assert await detect_total_memory_gib(meminfo) is None


@pytest.mark.asyncio
async def test_vram(tmp_path):
    for card, size in (("card0", 8 * 1024**3), ("card1", 4 * 1024**3), ("card0-DP-1", 32 * 1024**3)):
        device = tmp_path / card / "device"
        device.mkdir(parents=True)
        (device / "mem_info_vram_total").write_text(f"{size}\n")
    (tmp_path / "renderD128").mkdir()

    assert await detect_gpu_vram_gib(tmp_path) == 8.0


@pytest.mark.asyncio
async def test_vram_unknown(tmp_path):
    (tmp_path / "card0" / "device").mkdir(parents=True)
    assert await detect_gpu_vram_gib(tmp_path) is None
    assert await detect_gpu_vram_gib(tmp_path / "missing") is None


@pytest.fixture
def lspci(mocker):
    proc = Mock(returncode=0)
    proc.communicate = AsyncMock(return_value=(LSPCI, b""))
    return mocker.patch("hyprfinity.autotune.asyncio.create_subprocess_exec", AsyncMock(return_value=proc))


@pytest.mark.asyncio
async def test_gpu_models(lspci):
    assert await detect_gpu_models() == [
        "02.0 VGA compatible controller [0300]: Intel Corporation UHD Graphics 620 [8086:5917] (rev 07)",
        "00.0 3D controller [0302]: NVIDIA Corporation GP108M [GeForce MX150] [10de:1d10] (rev a1)",
    ]
    assert "NVIDIA" in await detect_gpu_model()


@pytest.mark.asyncio
async def test_gpu_models_failure(lspci):
    lspci.return_value.returncode = 1
    assert await detect_gpu_models() == []
    lspci.side_effect = FileNotFoundError("lspci")
    assert await detect_gpu_models() == []
    assert await detect_gpu_model() is None


@pytest.mark.asyncio
async def test_detect_profile(mocker):
    mocker.patch(
        "hyprfinity.autotune.detect_hardware",
        AsyncMock(return_value=HardwareInfo(cpu_threads=16, mem_gib=32.0, gpu_model="GeForce RTX 4080", gpu_vram_gib=16.0)),
    )
    profile = await detect_auto_tune_profile(7680 * 2160)
    assert profile.render_scale == 0.82
    assert "GPU='GeForce RTX 4080'" in profile.reason
