"""
Image and region algorithms shared by the detectors.

- morphology: erosion/dilation over binary masks
- components: explicit-stack flood fill into regions
- regions: merging of nearby regions
- saliency_maps: per-cue saliency maps, fusion and classification
- temporal: detector-internal temporal confirmation
- geometry: IoU and distance helpers
"""
