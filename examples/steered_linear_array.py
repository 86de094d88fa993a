"""
Example: Steered Linear Array
=============================
An 8-element λ/2 linear array at 10 kHz in air, steered to 30°.
This demonstrates the single-array workflow: element layout, steering
phases, beam pattern sweep and far-field metrics.

Output: printed beam metrics and a coarse ASCII beam pattern
"""

from beamscape import ArrayUnit, analyze_beam_pattern

# 8 elements with λ/2 spacing at 10 kHz (c = 343 m/s)
array = ArrayUnit.create_default(name="Demo", frequency=10e3)
array.steering_angle = 30.0

# Reduce sidelobes below -30 dB
array.apply_taper("chebyshev", sidelobe_db=30)

print(f"Aperture: {array.aperture * 1e3:.1f} mm, d/λ = {array.pitch_lambda_ratio:.3f}")
for element in array.element_positions():
    print(f"  element {element.index}: x = {element.x * 1e3:+7.2f} mm, "
          f"phase = {element.phase_offset:+.3f} rad, a = {element.amplitude:.3f}")

metrics = analyze_beam_pattern(array)
print(f"\nMain lobe: {metrics.main_lobe_angle:+.1f}°")
print(f"HPBW: {metrics.half_power_beamwidth:.1f}°")
print(f"Peak sidelobe: {metrics.peak_sidelobe_db:.1f} dB")

# Coarse pattern over the front half-space, one line per 10°
print()
for sample in array.generate_beam_pattern(angle_resolution=10.0):
    if -90 <= sample.angle <= 90:
        bar = "#" * int(round((sample.db + 40) / 2))
        print(f"{sample.angle:+6.0f}° {sample.db:6.1f} dB {bar}")
