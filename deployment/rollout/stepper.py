# 地方志数据智能管理系统 - 渐进式发布步进
"""期望状态与历史状态的合并、目标流量重分配与单步推进"""

import copy
from collections import defaultdict
from dataclasses import replace
from typing import Dict, List, Optional

from .logging import rollout_logger
from .models import ConfigurationRollout, Rollout


def adjust_percentage(goal: int, cr: ConfigurationRollout):
    """
    按新的目标总流量调整各版本的百分比

    总量增加时差值全部给最新的版本; 总量减少时从最旧的版本开始扣减,
    扣完的版本从列表中移除.

    Args:
        goal: 新的目标总流量
        cr: 待调整的配置目标, 原地修改
    """
    diff = goal - cr.percent
    if goal == 0:
        # 没有流量, 也就没有发布
        cr.revisions = []
    elif cr.revisions and diff > 0:
        newest = cr.revisions[-1]
        cr.revisions[-1] = replace(newest, percent=newest.percent + diff)
    elif cr.revisions and diff < 0:
        deficit = -diff
        revisions = list(cr.revisions)
        i = 0
        while deficit > 0 and i < len(revisions):
            if revisions[i].percent > deficit:
                revisions[i] = replace(revisions[i], percent=revisions[i].percent - deficit)
                break
            deficit -= revisions[i].percent
            i += 1
        cr.revisions = revisions[i:]
    cr.percent = goal


def step_revisions(goal: ConfigurationRollout, now_ts: int):
    """将一个步长的流量从较旧的版本迁移到最新的版本"""
    # 还没到下一步的时间, 或者发布已经完成
    if now_ts < goal.next_step_time or len(goal.revisions) < 2:
        return

    revisions = list(goal.revisions)
    remaining = goal.step_size
    write_pos = len(revisions) - 1
    read_pos = len(revisions) - 2

    # 目标总量被调到步长以下时, 较旧的版本全部扣完后remaining仍大于0.
    # 例如 R1=40 R2=10 步长10 总量50, 总量调为15后 R1=5 R2=10,
    # 扣完R1后remaining=5, 由下面的封顶处理.
    while remaining > 0 and read_pos >= 0:
        rev = revisions[read_pos]
        if rev.percent > remaining:
            revisions[read_pos] = replace(rev, percent=rev.percent - remaining)
            break
        # 该版本不再接收流量
        remaining -= rev.percent
        write_pos -= 1
        read_pos -= 1

    newest = revisions[-1]
    # 上例中R2会变成20, 需要封顶到15
    percent = min(newest.percent + goal.step_size, goal.percent)
    goal.revisions = revisions[:write_pos] + [replace(newest, percent=percent)]
    goal.next_step_time = now_ts + goal.step_duration

    rollout_logger(goal, __name__).debug(
        "发布推进一步",
        revisions=[(r.revision_name, r.percent) for r in goal.revisions],
        next_step_time=goal.next_step_time,
    )


def step_config(
    goal: ConfigurationRollout,
    prev: ConfigurationRollout,
    now_ts: int
) -> ConfigurationRollout:
    """
    根据期望状态和上一次的状态计算配置目标新的流量分配

    Args:
        goal: 期望状态, 只含一个版本, 即当前期望的版本
        prev: 同一配置目标上一次的状态, 会被原地调整
        now_ts: 当前Unix时间戳（秒）

    Returns:
        新的配置目标状态
    """
    # 出现新版本时需要重置时间信息, 所以这里先留空
    ret = ConfigurationRollout(
        configuration_name=goal.configuration_name,
        tag=goal.tag,
        percent=goal.percent,
        revisions=[replace(r) for r in goal.revisions],
    )

    if prev.revisions:
        adjust_percentage(goal.percent, prev)

    desired = goal.revisions[0].revision_name if goal.revisions else None
    # 期望版本与上次最新的版本相同（或者上次没有版本）, 说明没有开始新的发布
    if not prev.revisions or desired is None or desired == prev.revisions[-1].revision_name:
        if prev.revisions:
            ret.revisions = prev.revisions
            ret.deadline = prev.deadline
            ret.next_step_time = prev.next_step_time
            ret.step_duration = prev.step_duration
            ret.step_size = prev.step_size
            ret.start_time = prev.start_time
            # 目标总量的变化已经由adjust_percentage处理, 这里只在版本之间重新分配
            step_revisions(ret, now_ts)
        return ret

    # 开始新的发布
    ret.start_time = now_ts

    # 从新到旧找到第一个有流量的版本, 让出1%给新版本
    revisions = list(prev.revisions)
    for i in range(len(revisions) - 1, -1, -1):
        if revisions[i].percent > 0:
            revisions[i] = replace(revisions[i], percent=revisions[i].percent - 1)
            break

    # 去掉流量为0的版本, 一般只会是上面从1%降到0%的那个
    out = [r for r in revisions if r.percent != 0]
    out.append(replace(goal.revisions[0], percent=1))
    ret.revisions = out

    rollout_logger(ret, __name__).info(
        "开始渐进式发布",
        revision=desired,
        start_time=now_ts,
    )
    return ret


def _group_by_tag(configs: List[ConfigurationRollout]) -> Dict[str, List[ConfigurationRollout]]:
    """按标签分组, 组内按配置名排序"""
    groups: Dict[str, List[ConfigurationRollout]] = defaultdict(list)
    for cfg in configs:
        groups[cfg.tag].append(cfg)
    for cfgs in groups.values():
        cfgs.sort(key=lambda c: c.configuration_name)
    return groups


def step_rollout(cur: Rollout, prev: Optional[Rollout], now_ts: int) -> Rollout:
    """
    合并期望状态与上一次的状态

    Args:
        cur: 本次调谐根据期望状态构建的发布状态
        prev: 上一次持久化并已校验的发布状态, 可以为空
        now_ts: 当前Unix时间戳（秒）

    Returns:
        新的发布状态; 没有上一次状态时返回cur本身
    """
    if prev is None or not prev.configurations:
        return cur

    prev = copy.deepcopy(prev)
    curr_configs = _group_by_tag(cur.configurations)
    prev_configs = _group_by_tag(prev.configurations)

    ret: List[ConfigurationRollout] = []
    for tag, ccfgs in curr_configs.items():
        pcfgs = prev_configs.get(tag)
        # 新增的标签没有可以过渡的历史状态, 直接以100%上线
        # （默认标签总是存在, 所以不会整体丢流量）
        if pcfgs is None:
            ret.append(copy.deepcopy(ccfgs[0]))
            continue

        # 两侧都按配置名排好序, 双指针求交
        i, j = 0, 0
        while i < len(ccfgs):
            ccfg = ccfgs[i]
            if j >= len(pcfgs):
                # 本次调谐新增的配置
                ret.append(copy.deepcopy(ccfg))
                i += 1
            elif ccfg.configuration_name == pcfgs[j].configuration_name:
                # 只通过标签访问的配置可能分到0%流量, 不参与发布
                if ccfg.percent > 1:
                    ret.append(step_config(ccfg, pcfgs[j], now_ts))
                elif ccfg.percent == 1:
                    # 常见的A/B场景, 测试配置只分到1%, 无需计算
                    ret.append(copy.deepcopy(ccfg))
                i += 1
                j += 1
            elif ccfg.configuration_name < pcfgs[j].configuration_name:
                # 新增的配置, 有流量时保留
                if ccfg.percent != 0:
                    ret.append(copy.deepcopy(ccfg))
                i += 1
            else:
                # 配置已被移除, 不再有流量
                j += 1

    ro = Rollout(configurations=ret)
    # 中间的分组遍历顺序不可依赖, 需要重新排序
    sort_rollout(ro)
    return ro


def sort_rollout(r: Rollout):
    """按标签、再按配置名排序, 保证每次结果一致"""
    r.configurations.sort(key=lambda c: (c.tag, c.configuration_name))
