"""Recommend an internal render scale from the span size and the hardware.

The heuristic starts from the span's pixel count, then nudges the scale up or
down according to CPU threads, RAM, the GPU model (from `lspci`) and the VRAM
size (from the amdgpu sysfs files).
"""

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path

import aiofiles
import aiofiles.os

from .models import AutoTuneProfile
from .sizing import round_half_up

__all__ = [
    "HardwareInfo",
    "detect_auto_tune_profile",
    "detect_gpu_model",
    "detect_gpu_vram_gib",
    "detect_hardware",
    "detect_total_memory_gib",
    "gpu_model_score",
    "gpu_scale_adjustment",
    "recommend_render_scale",
]

MIN_AUTO_SCALE = 0.5
MAX_AUTO_SCALE = 1.0
GPU_DELTA_MIN = -0.35
GPU_DELTA_MAX = 0.12
LARGE_SPAN_PIXELS = 10_000_000

# (pixels above, base scale), first match wins
SPAN_SCALES = (
    (16_000_000, 0.60),
    (12_000_000, 0.67),
    (8_500_000, 0.75),
    (5_500_000, 0.85),
)

GPU_CLASSES = ("VGA compatible controller", "3D controller", "Display controller")
POLARIS_MODELS = ("rx 580", "rx580", "rx 570", "rx570", "rx 560", "rx560", "rx 480", "rx480", "rx 470", "rx470", "rx 460", "rx460")

DRM_PATH = Path("/sys/class/drm")
MEMINFO_PATH = Path("/proc/meminfo")
GIB = 1024**3


@dataclass(frozen=True)
class HardwareInfo:
    """What the heuristic knows about the machine (None = unknown)."""

    cpu_threads: int = 4
    mem_gib: float | None = None
    gpu_model: str | None = None
    gpu_vram_gib: float | None = None


# Probes {{{


async def detect_total_memory_gib(meminfo: Path = MEMINFO_PATH) -> float | None:
    """Read MemTotal from /proc/meminfo."""
    try:
        async with aiofiles.open(meminfo, encoding="utf-8") as f:
            lines = await f.readlines()
    except OSError:
        return None
    for line in lines:
        if line.startswith("MemTotal:"):
            fields = line.split()
            if len(fields) > 1 and fields[1].isdigit():
                return int(fields[1]) / 1024 / 1024
    return None


async def detect_gpu_models() -> list[str]:
    """List display controllers reported by `lspci -nn`."""
    try:
        proc = await asyncio.create_subprocess_exec(
            "lspci", "-nn", stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.DEVNULL
        )
    except OSError:
        return []
    stdout, _ = await proc.communicate()
    if proc.returncode != 0:
        return []
    models = []
    for line in stdout.decode(errors="replace").splitlines():
        if any(kind in line for kind in GPU_CLASSES):
            _, sep, rest = line.partition(":")
            models.append(rest.strip() if sep else line.strip())
    return models


def gpu_model_score(model: str) -> int:
    """Rank GPUs so a discrete card wins over an integrated one."""
    lc = model.lower()
    score = 0
    if any(tag in lc for tag in ("nvidia", "geforce", "rtx", "gtx")):
        score += 50
    if any(tag in lc for tag in ("amd", "ati", "radeon", "rx ", "rx5", "rx 5", "rx6", "rx 6", "rx7", "rx 7")):
        score += 45
    if "intel" in lc:
        score += 10
        score += 20 if "arc" in lc else -8
    if any(tag in lc for tag in ("uhd", "hd graphics", "iris", "vega 8", "vega 11")):
        score -= 6
    if "rx 580" in lc or "rx580" in lc:
        score += 5
    return score


async def detect_gpu_model() -> str | None:
    """Return the most capable GPU model found."""
    models = await detect_gpu_models()
    return max(models, key=gpu_model_score) if models else None


async def detect_gpu_vram_gib(drm_path: Path = DRM_PATH) -> float | None:
    """Return the largest VRAM size exposed by `card*/device/mem_info_vram_total`."""
    try:
        names = await aiofiles.os.listdir(drm_path)
    except OSError:
        return None
    best: int | None = None
    for name in names:
        if not name.startswith("card") or "-" in name:
            continue
        try:
            async with aiofiles.open(drm_path / name / "device" / "mem_info_vram_total", encoding="utf-8") as f:
                value = (await f.read()).strip()
        except OSError:
            continue
        if value.isdigit():
            best = max(best or 0, int(value))
    return best / GIB if best is not None else None


async def detect_hardware() -> HardwareInfo:
    """Probe the machine."""
    mem_gib, gpu_model, gpu_vram_gib = await asyncio.gather(detect_total_memory_gib(), detect_gpu_model(), detect_gpu_vram_gib())
    return HardwareInfo(cpu_threads=os.cpu_count() or 4, mem_gib=mem_gib, gpu_model=gpu_model, gpu_vram_gib=gpu_vram_gib)


# }}}
# Heuristic {{{


def gpu_scale_adjustment(gpu_model: str | None, gpu_vram_gib: float | None, span_pixels: int | None) -> tuple[float, str]:
    """Return the GPU scale delta and its explanation."""
    delta = 0.0
    reasons: list[str] = []

    if gpu_vram_gib is not None:
        vram = gpu_vram_gib
        if vram <= 4.0:  # noqa: PLR2004
            delta -= 0.20
            reasons.append(f"VRAM {vram:.1f}GiB (very low)")
        elif vram <= 6.0:  # noqa: PLR2004
            delta -= 0.15
            reasons.append(f"VRAM {vram:.1f}GiB (low)")
        elif vram <= 8.0:  # noqa: PLR2004
            delta -= 0.10
            reasons.append(f"VRAM {vram:.1f}GiB (mid)")
        elif vram >= 16.0:  # noqa: PLR2004
            delta += 0.08
            reasons.append(f"VRAM {vram:.1f}GiB (high)")
        elif vram >= 12.0:  # noqa: PLR2004
            delta += 0.05
            reasons.append(f"VRAM {vram:.1f}GiB (good)")

    if gpu_model:
        lc = gpu_model.lower()
        if any(tag in lc for tag in POLARIS_MODELS):
            delta -= 0.15
            reasons.append("older AMD Polaris class")
        elif "intel" in lc and "arc" not in lc:
            delta -= 0.12
            reasons.append("integrated Intel graphics")
        elif "vega 8" in lc or "vega 11" in lc:
            delta -= 0.10
            reasons.append("integrated Vega graphics")
        elif "rtx 40" in lc or "rx 7" in lc:
            delta += 0.08
            reasons.append("newer high-end GPU tier")

    if (span_pixels or 0) > LARGE_SPAN_PIXELS and delta < 0:
        delta -= 0.05
        reasons.append("large multi-monitor span")

    delta = min(max(delta, GPU_DELTA_MIN), GPU_DELTA_MAX)
    return delta, ", ".join(reasons) if reasons else "no strong GPU adjustment"


def recommend_render_scale(span_pixels: int | None, hardware: HardwareInfo) -> AutoTuneProfile:
    """Compute the recommended render scale for a machine."""
    scale = 1.0
    if span_pixels is not None:
        for threshold, base in SPAN_SCALES:
            if span_pixels > threshold:
                scale = base
                break

    threads = hardware.cpu_threads
    mem = hardware.mem_gib if hardware.mem_gib is not None else 16.0
    if threads >= 16 and mem >= 32.0:  # noqa: PLR2004
        scale += 0.10
    elif threads >= 12 and mem >= 24.0:  # noqa: PLR2004
        scale += 0.05
    elif threads <= 4 or mem < 8.0:  # noqa: PLR2004
        scale -= 0.15
    elif threads <= 6 or mem < 12.0:  # noqa: PLR2004
        scale -= 0.10

    gpu_delta, gpu_reason = gpu_scale_adjustment(hardware.gpu_model, hardware.gpu_vram_gib, span_pixels)
    scale = round_half_up((scale + gpu_delta) * 100) / 100
    scale = min(max(scale, MIN_AUTO_SCALE), MAX_AUTO_SCALE)

    def known(value: float | None) -> str:
        return "unknown" if value is None else f"{value:.1f}"

    reason = (
        f"auto-tuned using CPU threads={threads}, RAM={known(hardware.mem_gib)} GiB, "
        f"span_pixels={'unknown' if span_pixels is None else span_pixels}, GPU='{hardware.gpu_model or 'unknown'}', "
        f"GPU_VRAM={known(hardware.gpu_vram_gib)} GiB, gpu_adjustment={gpu_delta:+.2f} ({gpu_reason})"
    )
    return AutoTuneProfile(render_scale=scale, reason=reason)


async def detect_auto_tune_profile(span_pixels: int | None) -> AutoTuneProfile:
    """Probe the hardware and recommend a render scale for `span_pixels`."""
    return recommend_render_scale(span_pixels, await detect_hardware())


# }}}
