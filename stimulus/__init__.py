from stimulus.clamps import CurrentClamp, VoltageClamp, attached_clamp
