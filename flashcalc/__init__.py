"""FlashCalc: a timed arithmetic flash quiz with a Discord host."""
