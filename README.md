# auxfx

Auxiliary-bus audio effects for a frame-based mixer. The package also models
the sound-RAM allocator and the per-voice state that such a mixer keeps.

The package needs only the standard library.

## Frames and the effect life cycle

The mixer works in frames of 160 samples per channel (`fxbase.FRAME_SAMPLES`).
There are three channels, left, right and surround, and each sample is a 32-bit
integer. A frame is an `auxfx.fxbase.AuxBuffers`, which has `left`, `right` and
`surround` lists and a `channels` tuple. `AuxBuffers.silent()` returns a frame
of zeros.

Every effect is an `auxfx.fxbase.AuxEffect` and goes through the same steps:

1. `prepare()` builds the working state from the effect's settings.
2. `callback(reason, buffers)` is called once per frame:
   - With `AuxReason.BUFFER_UPDATE`, the effect calls `process(buffers)`, which
     changes the frame in place. This is skipped while processing is suspended.
   - With `AuxReason.PARAMETER_UPDATE`, nothing happens.
   - Any other reason raises `ValueError`.
3. `update_settings()` applies changed settings. Processing is suspended while
   it runs.
4. `shutdown()` drops the working state.

If you call `process` before `prepare`, or after `shutdown`, it raises
`RuntimeError`.

## Effects

### `auxfx.delay.Delay(delay, feedback, output)`

A feedback delay with one setting per channel, and each argument takes three
values. `delay` is in milliseconds and is rounded up to whole frames.
`feedback` and `output` are percentages.

### `auxfx.chorus.Chorus(base_delay, variation, period)`

A short delay whose read position drifts, because the pitch is swept up and
down. The delayed signal is interpolated from a 4-tap table,
`chorus.RESAMPLE_TABLE`.

- `base_delay` must lie in 5..15 ms.
- `variation` must not be negative.
- `period` must be at least 5 ms.

Settings outside these ranges raise `ValueError`. Each channel handed to
`process` must hold exactly 160 samples.

### `auxfx.creverb.ReverbSTD(coloration, time, mix, damping, pre_delay)`

A cheap reverb. Each channel goes through two comb filters, a damping
low-pass and two all-pass filters, with an optional pre-delay.

`validate_reverb_params` checks the settings:

| Setting | Allowed range |
| --- | --- |
| coloration, mix, damping | 0..1 |
| time | 0.01..10 seconds |
| pre_delay | 0..0.1 seconds |

Invalid settings make `prepare()` and `modify(...)` return `False`. In that
case `modify` leaves the current state as it is. The module also provides
`DelayLine`, a circular buffer with `set_delay(lag)` and `tick(value)`.

### `auxfx.reverb_hi.ReverbHI(coloration, time, mix, damping, pre_delay, crosstalk)`

A higher-quality reverb. Each channel goes through three comb filters and
three all-pass filters. `crosstalk` must lie in 0..1, and the other settings
follow the `ReverbSTD` ranges.

When `crosstalk` is not zero, each frame first blends left and right through
`cross_talk(left, right, start, end)`, which changes both lists in place.

## Sound RAM

`auxfx.aram.Aram(length, base=0, size=16 MiB, arq_chunk_size=4096)` keeps a
`bytearray` as the sound RAM. The first 1280 bytes are a block of silence, and
`zero_buffer` gives its address.

**Sample data** grows upward from the start:

- `store_data(source, length)` stores data and returns its address.
- `remove_data(address, length)` releases the most recently stored block.

Lengths are rounded up to 32 bytes. After
`set_upload_callback(callback, chunk_size)`, `store_data` no longer copies
`source` directly. It calls `callback(position, block)` for each chunk and
stores the bytes it returns.

**Transfers** go through a low-priority and a high-priority `TransferQueue`,
each 16 entries deep:

- `upload(...)` queues a transfer. If the queue is full, it first finishes the
  oldest pending transfers.
- `sync()` finishes every pending low-priority transfer.

**Stream buffers** grow downward from the top:

- `allocate_stream_buffer(length)` returns an id from 0 to 63. It reuses the
  best-fitting freed buffer first.
- `stream_buffer_address(id)` and `stream_buffer_length(id)` report on a buffer.
- `free_stream_buffer(id)` returns a buffer. Freeing the lowest buffer gives
  its space back to the sample area.

Misuse raises `AramError`:

- not enough space,
- no free stream buffer slot,
- an invalid stream buffer id,
- removing data out of order,
- a transfer outside the RAM.

## Voices

`auxfx.hardware.Hardware(num_voices, mix_frq=32000, time_cents=None,
scale_index_table=None)` holds a list of `Voice` records. It records changes in
the sub-frame slot given by `time_offset` (0..4), and `start_frame()` clears
them.

Its methods fall into these groups:

- **Playback setup:** `init_sample_playback`, `break_voice`, `key_off`.
- **Envelope:** `set_adsr`. Mode 0 is linear, mode 1 is DLS in time cents and
  mode 2 is raw DLS. Mode 1 needs `time_cents` and `scale_index_table`.
- **Pitch and resampling:** `set_pitch`, `set_src_type`,
  `set_poly_phase_filter`.
- **Interaural time delay:** `set_itd_mode`, `setup_itd`.
- **Queries:** `get_pos`, `virtual_sample_id`, `is_active`, `in_startup`.

The module-level helpers are:

- `convert_length(length, sample_type)` gives the storage size in bytes.
- `frq_to_pitch(frq, mix_frq)` gives a 4.12 fixed-point pitch ratio.
- `align_stream_flush(offset, nbytes)` widens a region to 32-byte alignment.

## What the package does not do

auxfx does not open audio devices, mix or render voices, or play anything. The
effects work on frames that you hand them. `Hardware` only records voice
settings and change flags; it does not compute volumes or produce samples. The
package also has no sequencer, synthesizer or command-line tool.

## Example

```python
from auxfx.fxbase import AuxBuffers, AuxReason
from auxfx.delay import Delay

fx = Delay(delay=(100, 100, 100), feedback=(50, 50, 50), output=(100, 100, 100))
fx.prepare()
frame = AuxBuffers.silent()
frame.left[0] = 1000
fx.callback(AuxReason.BUFFER_UPDATE, frame)
fx.shutdown()
```

## Tests

```
pip install -e .[test]
pytest
```