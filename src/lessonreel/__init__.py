"""lessonreel — queued rendering of short instructional videos.

Compile a themed list of learning items into a timed scene script,
sequence it into frames, and drive an encoding backend to produce an
mp4. Jobs are submitted to a job store and picked up by workers.
"""
