"""
Example: Live Re-steering
=========================
Submits a burst of field jobs while sweeping the steering angle, the
way an interactive front end would while a slider is dragged. Only the
last job's result is delivered; superseded jobs are canceled and any
late messages for them are discarded.

Output: steer_sweep.h5 (final interference field)
"""

from beamscape import FieldJobClient, FieldSimulationRequest, load_scenario
from beamscape.io import write_field_result

scenario = load_scenario("tumor-ablation")
units = scenario.build_units()

with FieldJobClient() as client:
    for angle in range(0, 50, 5):
        units[0].steering_angle = -angle
        units[1].steering_angle = angle
        request = FieldSimulationRequest.from_units(
            units, medium=scenario.medium, resolution=256
        )
        job_id = client.submit(request)

    result = client.wait_for_result(timeout=60.0)
    print(f"Latest job: {job_id}")
    print(f"Discarded stale messages: {client.discarded}")

if result is not None:
    print(f"Computed in {result.compute_time_ms:.1f} ms, peak = {result.peak:.3f}")
    write_field_result("steer_sweep.h5", result, request)
