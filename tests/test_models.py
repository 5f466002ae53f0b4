# 地方志数据智能管理系统 - 发布状态模型测试
"""models模块测试"""

import pytest


class TestValidate:
    """发布状态校验测试"""

    def test_valid_rollout(self):
        """测试自洽的发布状态"""
        from deployment.rollout import Rollout, ConfigurationRollout, RevisionRollout

        ro = Rollout(configurations=[
            ConfigurationRollout(
                configuration_name="cfg-a",
                percent=80,
                revisions=[RevisionRollout("a-1", 30), RevisionRollout("a-2", 50)],
            ),
            ConfigurationRollout(
                configuration_name="cfg-b",
                percent=20,
                revisions=[RevisionRollout("b-1", 20)],
            ),
        ])

        assert ro.validate()

    def test_empty_rollout(self):
        """测试空的发布状态"""
        from deployment.rollout import Rollout, ConfigurationRollout

        assert Rollout().validate()
        assert Rollout(configurations=[ConfigurationRollout("cfg", percent=0)]).validate()

    def test_percent_over_100(self):
        """测试超过100%"""
        from deployment.rollout import Rollout, ConfigurationRollout, RevisionRollout

        ro = Rollout(configurations=[
            ConfigurationRollout(
                configuration_name="cfg",
                percent=101,
                revisions=[RevisionRollout("r-1", 101)],
            ),
        ])

        assert not ro.validate()

    def test_sum_mismatch(self):
        """测试版本百分比之和与总量不一致"""
        from deployment.rollout import Rollout, ConfigurationRollout, RevisionRollout

        ro = Rollout(configurations=[
            ConfigurationRollout(
                configuration_name="cfg",
                percent=100,
                revisions=[RevisionRollout("r-1", 60), RevisionRollout("r-2", 39)],
            ),
        ])
        assert not ro.validate()

        ro = Rollout(configurations=[
            ConfigurationRollout(configuration_name="cfg", percent=10),
        ])
        assert not ro.validate()


class TestDone:
    """发布完成判断测试"""

    def test_done(self):
        from deployment.rollout import ConfigurationRollout, RevisionRollout

        idle = ConfigurationRollout("cfg")
        finished = ConfigurationRollout("cfg", percent=100, revisions=[RevisionRollout("r-1", 100)])
        rolling = ConfigurationRollout(
            "cfg", percent=100, revisions=[RevisionRollout("r-1", 99), RevisionRollout("r-2", 1)]
        )

        assert idle.done()
        assert finished.done()
        assert not rolling.done()


class TestComputeProperties:
    """发布节奏计算测试"""

    @pytest.mark.parametrize(
        "percent,min_step,duration,step_size,step_duration",
        [
            # 120步多于99个百分点, 按1%一步
            (100, 1, 120, 1, 2),
            (100, 10, 120, 8, 10),
            (100, 30, 120, 24, 30),
            (2, 1, 120, 1, 120),
            (60, 2, 120, 1, 3),
            (50, 40, 120, 16, 40),
        ],
    )
    def test_compute(self, percent, min_step, duration, step_size, step_duration):
        """测试步长与步间隔"""
        from deployment.rollout import ConfigurationRollout

        cfg = ConfigurationRollout("cfg", percent=percent, start_time=900)
        cfg.compute_properties(1000, min_step, duration)

        assert cfg.step_size == step_size
        assert cfg.step_duration == step_duration
        assert cfg.next_step_time == 1000 + step_duration

    def test_step_size_at_least_one(self):
        """测试步长至少为1%"""
        from deployment.rollout import ConfigurationRollout

        for percent in range(2, 101):
            for min_step in (1, 2, 3, 5, 7, 30, 200):
                cfg = ConfigurationRollout("cfg", percent=percent)
                cfg.compute_properties(0, min_step, 120)
                assert cfg.step_size >= 1
                assert cfg.step_duration >= 1

    def test_nothing_to_move(self):
        """测试只有1%时不计算"""
        from deployment.rollout import ConfigurationRollout

        cfg = ConfigurationRollout("cfg", percent=1, start_time=900)
        cfg.compute_properties(1000, 1, 120)

        assert cfg.step_duration == 0
        assert cfg.step_size == 0
        assert cfg.next_step_time == 0


class TestObserveReady:
    """就绪观测测试"""

    def _rollout(self, **kwargs):
        from deployment.rollout import Rollout, ConfigurationRollout, RevisionRollout

        return Rollout(configurations=[
            ConfigurationRollout(
                configuration_name="cfg",
                percent=100,
                revisions=[RevisionRollout("r-1", 99), RevisionRollout("r-2", 1)],
                **kwargs
            ),
        ])

    def test_observe_first_step(self):
        """测试按首步耗时计算节奏"""
        ro = self._rollout(start_time=1000)
        ro.observe_ready(1005)

        cfg = ro.configurations[0]
        # 120 / 5 = 24步, 99 // 24 = 4
        assert cfg.step_duration == 5
        assert cfg.step_size == 4
        assert cfg.next_step_time == 1010

    def test_minimum_one_second(self):
        """测试单步耗时至少1秒"""
        ro = self._rollout(start_time=1000)
        ro.observe_ready(1000)

        cfg = ro.configurations[0]
        assert cfg.step_size == 1
        assert cfg.step_duration == 2
        assert cfg.next_step_time == 1002

    def test_custom_duration(self):
        """测试自定义发布时长"""
        ro = self._rollout(start_time=1000)
        ro.observe_ready(1005, duration_secs=60)

        cfg = ro.configurations[0]
        assert cfg.step_duration == 5
        assert cfg.step_size == 8

    def test_already_observed(self):
        """测试已计算过节奏的目标不再变化"""
        ro = self._rollout(start_time=1000, step_duration=7, step_size=3, next_step_time=1007)
        ro.observe_ready(2000)

        cfg = ro.configurations[0]
        assert (cfg.step_duration, cfg.step_size, cfg.next_step_time) == (7, 3, 1007)

    def test_not_rolling_out(self):
        """测试未开始发布的目标"""
        ro = self._rollout()
        ro.observe_ready(2000)

        assert ro.configurations[0].step_duration == 0


class TestNextStepTime:
    """下一步时间测试"""

    def test_next_step_time(self):
        from deployment.rollout import Rollout, ConfigurationRollout, RevisionRollout

        rolling = [RevisionRollout("r-1", 40), RevisionRollout("r-2", 10)]
        ro = Rollout(configurations=[
            ConfigurationRollout("a", percent=50, revisions=list(rolling), next_step_time=1300),
            ConfigurationRollout("b", percent=50, revisions=list(rolling), next_step_time=1200),
            # 已完成的发布不参与
            ConfigurationRollout(
                "c", tag="t", percent=100, revisions=[RevisionRollout("c-1", 100)], next_step_time=1100
            ),
        ])

        assert ro.next_step_time() == 1200
        assert Rollout().next_step_time() == 0


class TestDictConversion:
    """字典转换测试"""

    def test_omit_empty_fields(self):
        """测试省略空值字段"""
        from deployment.rollout import ConfigurationRollout, RevisionRollout

        cfg = ConfigurationRollout("cfg", percent=100, revisions=[RevisionRollout("r-1", 100)])

        assert cfg.to_dict() == {
            "configurationName": "cfg",
            "percent": 100,
            "revisions": [{"revisionName": "r-1", "percent": 100}],
        }

    def test_all_fields(self):
        """测试全部字段"""
        from deployment.rollout import ConfigurationRollout, RevisionRollout

        cfg = ConfigurationRollout(
            "cfg",
            tag="canary",
            percent=50,
            revisions=[RevisionRollout("r-1", 45), RevisionRollout("r-2", 5)],
            deadline=2000,
            start_time=1000,
            next_step_time=1010,
            step_duration=10,
            step_size=4,
        )
        data = cfg.to_dict()

        assert data["tag"] == "canary"
        assert data["starttime"] == 1000
        assert data["nextStepTime"] == 1010
        assert data["stepDuration"] == 10
        assert data["stepSize"] == 4
        assert data["deadline"] == 2000
        assert ConfigurationRollout.from_dict(data) == cfg
