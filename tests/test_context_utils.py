from browser.context_utils import launch_args, make_context_args


def test_mobile_context():
    warnings = []
    args = make_context_args(800, 1414, 2, warnings)
    assert args["viewport"] == {"width": 800, "height": 1414}
    assert args["is_mobile"] and args["has_touch"]
    assert args["locale"] == "en-US"
    assert args["color_scheme"] == "light"
    assert "iPhone" in args["user_agent"]
    assert warnings == []


def test_invalid_inputs_fall_back_with_warnings():
    warnings = []
    args = make_context_args(0, -5, 0, warnings)
    assert args["viewport"] == {"width": 800, "height": 1414}
    assert args["device_scale_factor"] == 2.0
    assert [w["code"] for w in warnings] == ["VIEWPORT_INVALID", "DPR_INVALID"]
    assert "--no-sandbox" in launch_args()
